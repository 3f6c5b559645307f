"""
Timekeeping constants shared across services
"""

SERVICE_NAME = "shift-timekeeping"

# Expected logout: every shift is a fixed 9-hour window measured from the first clock-in
SHIFT_TOTAL_MINUTES = 9 * 60
DEFAULT_PAID_BREAK_ALLOWANCE_MINUTES = 30

# Penalty tracking allowances (reporting only; they never change the expected logout)
UNPAID_BREAK_ALLOWANCE_MINUTES = 10
EXTRA_BREAK_ALLOWANCE_MINUTES = 10

# Auto-logout buffer bounds (minutes)
AUTO_LOGOUT_BUFFER_MIN = 30
AUTO_LOGOUT_BUFFER_MAX = 480

# Past-date auto-logout never records a session longer than this
MAX_SESSION_HOURS = 24

# Open logs older than this are reported as suspicious by the sweeper
STALE_LOG_WARNING_DAYS = 7

# Runtime setting keys (settings table)
SETTING_ENABLE_AUTO_LOGOUT = "enableAutoLogout"
SETTING_AUTO_LOGOUT_BUFFER = "autoLogoutBufferMinutes"
SETTING_LATE_GRACE = "lateGraceMinutes"

# Audit actions
AUDIT_CLOCK_IN = "ATTENDANCE_CLOCK_IN"
AUDIT_CLOCK_OUT = "ATTENDANCE_CLOCK_OUT"
AUDIT_AUTO_BREAK_START = "AUTO_BREAK_START"
AUDIT_AUTO_BREAK_END = "AUTO_BREAK_END"
AUDIT_AUTO_LOGOUT = "AUTO_LOGOUT"
AUDIT_LEGACY_CLOSE = "LEGACY_SESSION_CLOSED"

LEGACY_CLOSE_REASON = "Legacy session closed (pre-auto-logout)"
LEGACY_NO_SHIFT_REASON = "Legacy session closed (no shift assigned, >24h old)"
