import os

from heater_bridge import __version__

__all__ = [
    "ADDRESS_FILE_NAME",
    "DEFAULT_DRIVER",
    "DEFAULT_HASS_TOPIC",
    "DEFAULT_LEARN_TIMEOUT_MS",
    "DEFAULT_MQTT_CONN_DELAY",
    "DEFAULT_MQTT_HOST",
    "DEFAULT_MQTT_PORT",
    "DEFAULT_PAIR_TIMEOUT_MS",
    "DEFAULT_PERSISTENT_BASE_DIR",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_POLL_TIMEOUT_MS",
    "DEFAULT_TOPIC",
    "DEVICE_LWT_MSG",
    "HEATER_ADDRESS_FILE",
    "HEATER_AVAILABILITY_OFFLINE",
    "HEATER_AVAILABILITY_ONLINE",
    "HEATER_DEBUG",
    "HEATER_DRIVER",
    "HEATER_HASS_BIRTH_MSG",
    "HEATER_HASS_STATUS_TOPIC",
    "HEATER_HASS_TOPIC",
    "HEATER_HASS_WILL_MSG",
    "HEATER_LEARN_PAUSE_MS",
    "HEATER_LEARN_TIMEOUT_MS",
    "HEATER_LOG_CORRELATION_ENABLED",
    "HEATER_LOG_FORMAT",
    "HEATER_LOG_HUMAN_OUTPUT",
    "HEATER_LOG_JSON_FILE",
    "HEATER_LOG_NAME",
    "HEATER_MANUFACTURER",
    "HEATER_MODEL",
    "HEATER_MQTT_CLIENT_ID",
    "HEATER_MQTT_CONN_DELAY",
    "HEATER_MQTT_HOST",
    "HEATER_MQTT_PASS",
    "HEATER_MQTT_PORT",
    "HEATER_MQTT_USER",
    "HEATER_PAIR_TIMEOUT_MS",
    "HEATER_PERF_THRESHOLD_MS",
    "HEATER_PERF_TRACKING",
    "HEATER_POLL_INTERVAL",
    "HEATER_POLL_TIMEOUT_MS",
    "HEATER_TOPIC",
    "HEATER_VERSION",
    "MAX_DEVICE_ADDRESS",
    "MODE_AUTO",
    "MODE_MANUAL",
    "ORIGIN_STRUCT",
    "PERSISTENT_BASE_DIR",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
HEATER_LOG_NAME: str = "heater_bridge"

HEATER_VERSION: str = __version__
DEVICE_LWT_MSG: bytes = b"offline"
HEATER_AVAILABILITY_ONLINE: str = "online"
HEATER_AVAILABILITY_OFFLINE: str = "offline"

# Fixed broker client identifier; one bridge per heater.
HEATER_MQTT_CLIENT_ID: str = "diesel-heater-bridge"
HEATER_MANUFACTURER: str = "Generic"
HEATER_MODEL: str = "Chinese Diesel Heater (433 MHz)"

MAX_DEVICE_ADDRESS: int = 0xFFFFFFFF
MODE_AUTO: str = "auto"
MODE_MANUAL: str = "manual"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


DEFAULT_MQTT_HOST: str = "localhost"
DEFAULT_MQTT_PORT: int = 1883
DEFAULT_TOPIC: str = "diesel_heater"
DEFAULT_HASS_TOPIC: str = "homeassistant"
DEFAULT_MQTT_CONN_DELAY: int = 5
DEFAULT_POLL_INTERVAL: float = 5.0
DEFAULT_POLL_TIMEOUT_MS: int = 3000
# 60s pairing window, 500ms per learn attempt, 100ms between attempts
DEFAULT_PAIR_TIMEOUT_MS: int = 60000
DEFAULT_LEARN_TIMEOUT_MS: int = 500
DEFAULT_PERSISTENT_BASE_DIR: str = "/data"
ADDRESS_FILE_NAME: str = "heater_address.txt"
DEFAULT_DRIVER: str = "heater_bridge.drivers.simulated:SimulatedHeaterDriver"

HEATER_MQTT_HOST: str = os.environ.get("HEATER_MQTT_HOST", DEFAULT_MQTT_HOST)
HEATER_MQTT_PORT: int = _env_int("HEATER_MQTT_PORT", DEFAULT_MQTT_PORT)
HEATER_MQTT_USER: str | None = os.environ.get("HEATER_MQTT_USER") or None
HEATER_MQTT_PASS: str | None = os.environ.get("HEATER_MQTT_PASS") or None
HEATER_TOPIC: str = os.environ.get("HEATER_TOPIC", DEFAULT_TOPIC)
HEATER_HASS_TOPIC: str = os.environ.get("HEATER_HASS_TOPIC", DEFAULT_HASS_TOPIC)
HEATER_HASS_STATUS_TOPIC: str = os.environ.get("HEATER_HASS_STATUS_TOPIC", "status")
HEATER_HASS_BIRTH_MSG: str = os.environ.get("HEATER_HASS_BIRTH_MSG", "online")
HEATER_HASS_WILL_MSG: str = os.environ.get("HEATER_HASS_WILL_MSG", "offline")
HEATER_MQTT_CONN_DELAY: int = _env_int("HEATER_MQTT_CONN_DELAY", DEFAULT_MQTT_CONN_DELAY)

HEATER_POLL_INTERVAL: float = _env_float("HEATER_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)
HEATER_POLL_TIMEOUT_MS: int = _env_int("HEATER_POLL_TIMEOUT_MS", DEFAULT_POLL_TIMEOUT_MS)
HEATER_PAIR_TIMEOUT_MS: int = _env_int("HEATER_PAIR_TIMEOUT_MS", DEFAULT_PAIR_TIMEOUT_MS)
HEATER_LEARN_TIMEOUT_MS: int = _env_int("HEATER_LEARN_TIMEOUT_MS", DEFAULT_LEARN_TIMEOUT_MS)
HEATER_LEARN_PAUSE_MS: int = 100

PERSISTENT_BASE_DIR: str = os.environ.get("HEATER_PERSISTENT_BASE_DIR", DEFAULT_PERSISTENT_BASE_DIR)
HEATER_ADDRESS_FILE: str = os.environ.get("HEATER_ADDRESS_FILE", f"{PERSISTENT_BASE_DIR}/{ADDRESS_FILE_NAME}")

HEATER_DRIVER: str = os.environ.get("HEATER_DRIVER", DEFAULT_DRIVER)

HEATER_DEBUG = os.environ.get("HEATER_DEBUG", "0").casefold() in YES_ANSWER

ORIGIN_STRUCT = {
    "name": "heater-bridge",
    "sw_version": HEATER_VERSION,
}

# Logging Configuration
HEATER_LOG_FORMAT: str = os.environ.get("HEATER_LOG_FORMAT", "human")  # "json", "human", or "both"
HEATER_LOG_JSON_FILE: str | None = os.environ.get("HEATER_LOG_JSON_FILE") or None
HEATER_LOG_HUMAN_OUTPUT: str = os.environ.get("HEATER_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path
HEATER_LOG_CORRELATION_ENABLED: bool = (
    os.environ.get("HEATER_LOG_CORRELATION_ENABLED", "true").casefold() in YES_ANSWER
)

# Performance Instrumentation
HEATER_PERF_TRACKING: bool = os.environ.get("HEATER_PERF_TRACKING", "true").casefold() in YES_ANSWER
_perf_threshold = os.environ.get("HEATER_PERF_THRESHOLD_MS", "750")
HEATER_PERF_THRESHOLD_MS: int = int(_perf_threshold) if _perf_threshold and _perf_threshold.isdigit() else 750
