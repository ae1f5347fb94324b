"""
Pytest configuration for the launchpad tests.

Automation loops log through bittensor's logger; INFO is shown by default and
LAUNCHPAD_TEST_DEBUG=1 also shows the per-tick summaries.
"""
import logging
import os
import sys

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

from bittensor.utils.btlogging import logging as bt_logging

if os.getenv("LAUNCHPAD_TEST_DEBUG") == "1":
    bt_logging.enable_debug()
else:
    bt_logging.enable_info()
