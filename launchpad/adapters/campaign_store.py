"""
Interface for reading and writing campaign records.

Only query and update shapes are defined here; the storage engine is
external. Every write is an atomic multi-field update guarded by the
record's version, so concurrent writers cannot lose each other's updates.
"""
from abc import ABC, abstractmethod
from dataclasses import fields as dataclass_fields, replace
import threading
from typing import Any, Dict, Iterable, List, Optional

from bittensor.utils.btlogging import logging

from launchpad.domain.campaign import Campaign, PhaseChangeNotification
from launchpad.domain.phase import Phase
from launchpad.errors import CampaignNotFoundError, PersistenceConflictError

# Fields a caller may write; id and version are managed by the store
WRITABLE_FIELDS = frozenset(
    f.name for f in dataclass_fields(Campaign) if f.name not in ("id", "version")
)


def check_writable(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update campaign fields: {sorted(unknown)}")


class ICampaignStore(ABC):
    """Interface for the campaign persistence collaborator."""

    @abstractmethod
    def get_campaign(self, campaign_id: str) -> Campaign:
        """
        Point read of a campaign.

        Raises:
            CampaignNotFoundError: If no campaign has this id
        """
        pass

    @abstractmethod
    def find_campaigns(
        self,
        phases: Optional[Iterable[Phase]] = None,
        override_is_null: Optional[bool] = None,
        has_chain_ref: Optional[bool] = None,
    ) -> List[Campaign]:
        """
        Filtered scan.

        Args:
            phases: Only campaigns whose current phase is in this set (None for any)
            override_is_null: True for campaigns without an override, False for
                overridden ones, None for both
            has_chain_ref: True for campaigns with a deployed pool, False for
                those without, None for both

        Returns:
            List of matching campaigns
        """
        pass

    @abstractmethod
    def update_campaign(
        self,
        campaign_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Campaign:
        """
        Atomically update several fields of one campaign.

        All fields are written together or none is.

        Args:
            campaign_id: Campaign to update
            fields: Campaign attribute names mapped to their new values
            expected_version: Version the caller read; the write is rejected if
                the stored record has moved on

        Returns:
            The updated campaign

        Raises:
            CampaignNotFoundError: If no campaign has this id
            PersistenceConflictError: If expected_version no longer matches
        """
        pass

    @abstractmethod
    def add_notification(self, notification: PhaseChangeNotification) -> None:
        """Persist a phase-change notification record."""
        pass


class InMemoryCampaignStore(ICampaignStore):
    """
    Thread-safe in-process store.

    Returns snapshots, so callers never hold a reference into the store.
    """

    def __init__(self, campaigns: Optional[Iterable[Campaign]] = None):
        self._lock = threading.Lock()
        self._campaigns: Dict[str, Campaign] = {}
        self.notifications: List[PhaseChangeNotification] = []
        for campaign in campaigns or []:
            self.add_campaign(campaign)

    def add_campaign(self, campaign: Campaign) -> None:
        with self._lock:
            self._campaigns[campaign.id] = replace(campaign)

    def get_campaign(self, campaign_id: str) -> Campaign:
        with self._lock:
            campaign = self._campaigns.get(campaign_id)
            if campaign is None:
                raise CampaignNotFoundError(f"Campaign {campaign_id} not found")
            return replace(campaign)

    def find_campaigns(
        self,
        phases: Optional[Iterable[Phase]] = None,
        override_is_null: Optional[bool] = None,
        has_chain_ref: Optional[bool] = None,
    ) -> List[Campaign]:
        phase_set = set(phases) if phases is not None else None
        with self._lock:
            results = []
            for campaign in self._campaigns.values():
                if phase_set is not None and campaign.current_phase not in phase_set:
                    continue
                if override_is_null is not None and (campaign.phase_override is None) != override_is_null:
                    continue
                if has_chain_ref is not None and (campaign.chain_ref is not None) != has_chain_ref:
                    continue
                results.append(replace(campaign))
            return results

    def update_campaign(
        self,
        campaign_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Campaign:
        check_writable(fields)
        with self._lock:
            current = self._campaigns.get(campaign_id)
            if current is None:
                raise CampaignNotFoundError(f"Campaign {campaign_id} not found")
            if expected_version is not None and current.version != expected_version:
                raise PersistenceConflictError(
                    f"Campaign {campaign_id} is at version {current.version}, "
                    f"expected {expected_version}"
                )
            updated = replace(current, version=current.version + 1, **fields)
            self._campaigns[campaign_id] = updated
            logging.debug(f"Updated campaign {campaign_id}: {sorted(fields)} (version {updated.version})")
            return replace(updated)

    def add_notification(self, notification: PhaseChangeNotification) -> None:
        with self._lock:
            self.notifications.append(notification)
