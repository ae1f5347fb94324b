"""
Campaign domain model.

Represents an IDO campaign with its schedule anchors, phase bookkeeping and
cached on-chain funding statistics.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from launchpad.domain.phase import Phase


@dataclass(frozen=True)
class Schedule:
    """
    Anchor instants of a campaign.

    sale_start and sale_end are required; the other anchors are
    administrator-settable and derived from fixed offsets when absent.
    """

    sale_start: Optional[datetime]
    sale_end: Optional[datetime]
    whitelist_start: Optional[datetime] = None
    whitelist_end: Optional[datetime] = None
    claim_start: Optional[datetime] = None
    listing_date: Optional[datetime] = None


@dataclass(frozen=True)
class ChainRef:
    """Identifies the on-chain pool of a campaign."""

    contract_address: str
    chain_id: int

    def __str__(self) -> str:
        return f"{self.contract_address}@{self.chain_id}"


@dataclass(frozen=True)
class PoolStats:
    """Funding statistics read from a pool contract."""

    total_raised: Decimal
    hard_cap: Decimal
    participant_count: Optional[int] = None  # None when the pool does not expose it


@dataclass
class Campaign:
    """Represents an IDO campaign and its lifecycle state."""

    id: str
    schedule: Schedule
    name: str = ""
    phase_override: Optional[Phase] = None
    current_phase: Phase = Phase.UPCOMING  # Cache written by the transition scheduler
    phase_updated_at: Optional[datetime] = None
    chain_ref: Optional[ChainRef] = None
    raised_amount: Decimal = field(default_factory=Decimal)
    participant_count: int = 0
    hard_cap: Decimal = field(default_factory=Decimal)
    last_synced_at: Optional[datetime] = None
    version: int = 0  # Bumped by the store on every write

    @property
    def is_archived(self) -> bool:
        """Ended campaigns without an override accept no further writes."""
        return self.current_phase == Phase.ENDED and self.phase_override is None

    @property
    def progress_percentage(self) -> Decimal:
        if not self.hard_cap:
            return Decimal(0)
        return self.raised_amount / self.hard_cap * 100

    def __str__(self) -> str:
        return f"Campaign(id={self.id}, phase={self.current_phase.value})"


@dataclass(frozen=True)
class PhaseChangeNotification:
    """Record persisted for every phase transition."""

    campaign_id: str
    old_phase: Optional[Phase]
    new_phase: Phase
    at: datetime
    message: str = ""
