"""Config package"""
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from .settings import (
    Settings,
    load_settings,
    DEFAULT_CONFIG_PATH,
    REENTRY_POLICIES,
    LINK_POLICIES,
)
