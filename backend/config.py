"""
Runtime configuration for the relay and its clients.
All values can be overridden through environment variables.
"""
import os

# Relay server
RELAY_HOST = os.getenv("RELAY_HOST", "0.0.0.0")
RELAY_PORT = int(os.getenv("RELAY_PORT", "4000"))
RELAY_URL = os.getenv("RELAY_URL", f"ws://localhost:{RELAY_PORT}/ws")

# Kiosk local storage (stand-in for browser localStorage)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./kiosk_storage.db")

# Logging
LOG_FILE = os.getenv("LOG_FILE", "relay_performance.log")

# Mock recognition
DETECTION_RATE = float(os.getenv("DETECTION_RATE", "0.8"))
RECOGNITION_RATE = float(os.getenv("RECOGNITION_RATE", "0.7"))
REQUIRED_CAPTURES = int(os.getenv("REQUIRED_CAPTURES", "3"))

# Static admin credentials - demo only
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "7775782")

# Whether the kiosk pushes its attendance log back through the relay
KIOSK_SHARES_ATTENDANCE = os.getenv("KIOSK_SHARES_ATTENDANCE", "true").lower() in ("1", "true", "yes")
