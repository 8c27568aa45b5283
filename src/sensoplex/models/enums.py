from __future__ import annotations

from enum import Enum, IntEnum, IntFlag


class SessionState(Enum):
    """Connection states of a SensoPlex session."""
    DISCONNECTED = "disconnected"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READY = "ready"
    FAILED_TO_CONNECT = "failed_to_connect"
    TRANSPORT_ERROR = "transport_error"


class LEDState(IntEnum):
    """LED states accepted by the SETLED command."""
    SYSTEM_CONTROL = 0
    GREEN = 1
    RED = 2


class ChargerState(IntEnum):
    """Charger states reported in the module status."""
    NOT_CHARGING = 0
    CHARGING = 1
    CHARGE_COMPLETE = 2


class ModuleErrorType(IntEnum):
    """Index of each error counter in the module status."""
    UART_TX_OVERFLOW = 0
    UART_RX_BUFFER_FULL = 1
    UART_RX_CIRCULAR_BUFFER_FULL = 2
    UART_PARITY_OVERFLOW = 3
    BLE_TX_OVERFLOW = 4
    BLE_RX_BUFFER_FULL = 5
    BLE_STACK = 6
    NVM = 7
    SPI = 8
    PRESSURE = 9
    MPL = 10
    FLASH = 11


MODULE_ERROR_COUNT = len(ModuleErrorType)


class SensorOption(IntFlag):
    """Field-presence bits of a streamed sensor record.

    Fields appear in the payload in ascending bit order.
    """
    DATE_TIME = 0x0001
    TIMESTAMP = 0x0002
    BATTERY_VOLTS = 0x0004
    BLE_STATE = 0x0008
    GYROSCOPE = 0x0010
    ACCELEROMETER = 0x0020
    QUATERNION = 0x0040
    COMPASS = 0x0080
    PRESSURE = 0x0100
    TEMPERATURE = 0x0200
    LINEAR_ACCELERATION = 0x0400
    EULER = 0x0800
    RSSI = 0x1000
    ROTATION_MATRIX = 0x2000
    HEADING = 0x4000


ALL_SENSOR_OPTIONS = SensorOption(0x7FFF)
