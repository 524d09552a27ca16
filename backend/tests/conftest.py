import os
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

os.environ.setdefault("HOTEL_API_URL", "http://hotel.test/api")
os.environ.setdefault("USE_REDIS_SESSION_STORE", "false")
os.environ.setdefault("REFRESH_RATES_ON_STARTUP", "false")
os.environ.setdefault("RATE_DEBOUNCE_SECONDS", "0")
os.environ.setdefault("HTTP_RETRY_ATTEMPTS", "1")
