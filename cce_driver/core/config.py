import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(Path(__file__).parent.parent.parent.absolute(), '.env'))

BASE_SERVICE_URL = os.getenv('CCE_BASE_SERVICE_URL', 'otc.t-systems.com')
AUTH_URL = os.getenv('CCE_AUTH_URL', f'https://iam.eu-de.{BASE_SERVICE_URL}/v3')
DEFAULT_REGION = os.getenv('CCE_DEFAULT_REGION', 'eu-de')
DEFAULT_PROVIDER = os.getenv('CCE_PROVIDER', 'opentelekomcloud')

# Resource readiness / deletion polling
STATUS_POLL_ATTEMPTS = int(os.getenv('CCE_STATUS_POLL_ATTEMPTS', '60'))
STATUS_POLL_INTERVAL = float(os.getenv('CCE_STATUS_POLL_INTERVAL', '10'))

# Service account bootstrap after cluster readiness
BOOTSTRAP_RETRIES = int(os.getenv('CCE_BOOTSTRAP_RETRIES', '5'))
BOOTSTRAP_RETRY_DELAY = float(os.getenv('CCE_BOOTSTRAP_RETRY_DELAY', '30'))

LOG_LEVEL = os.getenv('CCE_LOG_LEVEL', 'INFO').upper()
