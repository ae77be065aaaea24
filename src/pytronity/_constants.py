"""Internal constants shared across the library."""

BASE_URL = "https://api.tronity.tech"
TOKEN_PATH = "/authentication"
USER_AGENT = "pytronity"

#: Default telemetry cache lifetime in seconds (the controller's polling interval).
DEFAULT_CACHE_TTL: float = 300.0

#: Tokens are treated as expired this many seconds before their real expiry.
TOKEN_EXPIRY_DELTA: float = 10.0

# ------------------------------------------------------------------
# OAuth scopes granted per vehicle
# ------------------------------------------------------------------

READ_VIN = "read_vin"
READ_VEHICLE_INFO = "read_vehicle_info"
READ_ODOMETER = "read_odometer"
READ_CHARGE = "read_charge"
READ_BATTERY = "read_battery"
READ_LOCATION = "read_location"
WRITE_CHARGE_START_STOP = "write_charge_start_stop"
WRITE_WAKE_UP = "write_wake_up"

#: Value of ``Bulk.charging`` while the vehicle is charging.
CHARGING_SIGNAL = "Charging"
