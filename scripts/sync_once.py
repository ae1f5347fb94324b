"""
One-time sync script.

Runs a single phase check and chain sync for all campaigns without waiting
for the poll intervals. Useful for manual syncs or testing.
"""
from workers.automation import AutomationService


def main():
    """Check phases and sync pool stats once."""
    service = AutomationService()
    service.sync_once()


if __name__ == "__main__":
    main()
