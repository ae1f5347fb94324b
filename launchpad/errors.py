"""
Error taxonomy for campaign lifecycle automation.

Errors local to one campaign are contained by the periodic loops; only
ConfigurationError is allowed to stop the process, and only at startup.
"""


class LaunchpadError(Exception):
    """Base class for all launchpad automation errors."""


class InvalidScheduleError(LaunchpadError):
    """Missing required anchors or an anchor-ordering violation."""


class InvalidPhaseError(LaunchpadError, ValueError):
    """A value that is not one of the five lifecycle phases."""


class ChainUnavailableError(LaunchpadError):
    """Transient chain RPC failure (error response, connection error or timeout)."""


class PersistenceConflictError(LaunchpadError):
    """The record changed since it was read (version mismatch)."""


class NotificationDeliveryError(LaunchpadError):
    """Recording a notification or running a phase hook failed."""


class CampaignNotFoundError(LaunchpadError, KeyError):
    """No campaign with the requested id."""


class CampaignArchivedError(LaunchpadError):
    """The campaign has ended and no longer accepts writes."""


class ConfigurationError(LaunchpadError, ValueError):
    """Invalid startup configuration."""
