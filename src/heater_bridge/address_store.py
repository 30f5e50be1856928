from __future__ import annotations

from pathlib import Path

from heater_bridge.const import MAX_DEVICE_ADDRESS
from heater_bridge.instrumentation import timed
from heater_bridge.logging_abstraction import get_logger

logger = get_logger(__name__)


class AddressStore:
    """Persist the learned heater address as a single hex token on disk."""

    lp: str = "address_store:"

    def __init__(self, path: str | Path) -> None:
        self.path: Path = Path(path).expanduser()

    def load(self) -> int:
        """Return the persisted address, or 0 when there is none.

        A missing or unreadable file and garbage content all mean "not paired".
        """
        lp = f"{self.lp}load:"
        try:
            raw = self.path.read_text().strip()
        except FileNotFoundError:
            logger.debug("%s No address file at %s", lp, self.path.as_posix())
            return 0
        except OSError as e:
            logger.warning("%s Unable to read %s: %s", lp, self.path.as_posix(), e)
            return 0

        if not raw:
            return 0
        try:
            address = int(raw.split()[0], 16)
        except ValueError:
            logger.warning("%s Ignoring unparsable address token: %r", lp, raw)
            return 0
        if not 0 <= address <= MAX_DEVICE_ADDRESS:
            logger.warning("%s Ignoring out-of-range address: %r", lp, raw)
            return 0

        logger.info("%s Loaded heater address 0x%08X from %s", lp, address, self.path.as_posix())
        return address

    @timed("address_save")
    def save(self, address: int) -> bool:
        """Overwrite the persisted address. Failures are logged, never raised."""
        lp = f"{self.lp}save:"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            _ = self.path.write_text(f"{address:08X}\n")
        except OSError:
            logger.exception(
                "%s Failed to persist heater address 0x%08X to %s",
                lp,
                address,
                self.path.as_posix(),
            )
            return False
        logger.info("%s Heater address 0x%08X written to %s", lp, address, self.path.as_posix())
        return True
