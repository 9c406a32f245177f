"""
FRU EEPROM access: the on-board EEPROM and the EEPROMs of FMC mezzanine cards.

The image is read in one transaction and decoded by the fru package. The
on-board EEPROM uses two-byte register addressing and carries the PCIe info
and UUID fields; FMC EEPROMs use one-byte addressing and do not.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..bus.backend import BusBackend
from ..errors import TransactionError, ValidationError
from ..fru import (
    BoardInfo,
    BoardSummary,
    CommonHeader,
    MultirecordEntry,
    decode_board_area,
    decode_board_identity,
    decode_common_header,
    decode_multirecord_area,
    decode_summary,
    find_vadj_range,
)
from .catalog import BoardCatalog, EepromDescriptor, lookup

logger = logging.getLogger(__name__)

EepromTarget = Union[str, EepromDescriptor]


@dataclass(frozen=True)
class FmcCard:
    """An FMC slot with a card fitted."""

    slot: str
    manufacturer: str
    product_name: str


class EepromController:
    def __init__(self, backend: BusBackend, catalog: BoardCatalog):
        """Initialize with a bus backend and the board catalog.

        Args:
            backend: BusBackend for transactions
            catalog: Board catalog with the on-board EEPROM and FMC slots
        """
        self._backend = backend
        self._catalog = catalog

    def _eeprom(self, target: Optional[EepromTarget]) -> EepromDescriptor:
        if target is None:
            if self._catalog.eeprom is None:
                raise ValidationError(f"Board {self._catalog.board} has no on-board EEPROM")
            return self._catalog.eeprom
        return lookup(self._catalog.fmcs, target, "FMC")

    def read_image(self, target: Optional[EepromTarget] = None) -> bytes:
        """Read the full image of an EEPROM (the on-board one when target is None)."""
        eeprom = self._eeprom(target)
        with self._backend.transaction(eeprom.bus, eeprom.address) as tx:
            image = tx.read(0x00, eeprom.size, width=eeprom.address_width)
        logger.debug(f"Read {len(image)} bytes from {eeprom.name} EEPROM")
        return image

    def read_common_header(self, target: Optional[EepromTarget] = None) -> CommonHeader:
        return decode_common_header(self.read_image(target))

    def read_board_info(self, target: Optional[EepromTarget] = None) -> BoardInfo:
        eeprom = self._eeprom(target)
        return decode_board_area(self.read_image(eeprom), eeprom.is_pcie)

    def read_multirecords(
        self, target: Optional[EepromTarget] = None, strict: bool = False
    ) -> list[MultirecordEntry]:
        return decode_multirecord_area(self.read_image(target), strict=strict)

    def read_summary(self) -> BoardSummary:
        """Identity strings and MAC addresses of the on-board EEPROM."""
        return decode_summary(self.read_image())

    def read_vadj_range(self, target: EepromTarget) -> tuple[float, float]:
        """Min/max VADJ voltage supported by the card in an FMC slot."""
        return find_vadj_range(self.read_image(self._eeprom(target)))

    def is_present(self, target: EepromTarget) -> bool:
        """Whether a card answers in the slot, probed with an address-only write."""
        eeprom = self._eeprom(target)
        try:
            with self._backend.transaction(eeprom.bus, eeprom.address) as tx:
                tx.write(0x00)
        except TransactionError as e:
            logger.debug(f"No card in {eeprom.name}: {e}")
            return False
        return True

    def list_fmcs(self) -> list[FmcCard]:
        """Fitted FMC cards with their manufacturer and product name."""
        cards = []
        for slot in self._catalog.fmcs:
            if not self.is_present(slot):
                continue
            manufacturer, product = decode_board_identity(self.read_image(slot))
            cards.append(FmcCard(slot, manufacturer, product))
        logger.info(f"{len(cards)} FMC card(s) fitted")
        return cards
