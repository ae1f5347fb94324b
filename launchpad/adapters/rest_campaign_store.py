"""
Campaign store backed by a PostgREST (Supabase) REST API.

Campaigns live in the project_submissions table, phase-change notifications
in the notifications table. Column names follow those tables.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
import os
from typing import Any, Dict, Iterable, List, Optional

import requests
from bittensor.utils.btlogging import logging

from launchpad.adapters.campaign_store import ICampaignStore, check_writable
from launchpad.constants import (
    CAMPAIGNS_TABLE,
    DEFAULT_API_TIMEOUT_SECONDS,
    NOTIFICATIONS_TABLE,
)
from launchpad.domain.campaign import Campaign, ChainRef, PhaseChangeNotification, Schedule
from launchpad.domain.phase import Phase
from launchpad.errors import (
    CampaignNotFoundError,
    ConfigurationError,
    InvalidPhaseError,
    PersistenceConflictError,
)

SCHEDULE_COLUMNS = {
    "sale_start": "presale_start",
    "sale_end": "presale_end",
    "whitelist_start": "whitelist_start",
    "whitelist_end": "whitelist_end",
    "claim_start": "claim_start",
    "listing_date": "listing_date",
}

# Persisted values matching a phase, including the legacy "filled" value
PHASE_DB_VALUES = {
    Phase.PROCESSING: ("processing", "filled"),
}


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    # PostgREST trims trailing zeros of fractional seconds (e.g. "12:00:00.5+00:00"),
    # which fromisoformat accepts from Python 3.11 on
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid numeric value: {value!r}") from None


def row_to_campaign(row: Dict[str, Any]) -> Campaign:
    """
    Map a project_submissions row to a Campaign.

    Raises:
        InvalidPhaseError: If a phase column holds an unknown value
        ValueError: If a date or amount column cannot be parsed
    """
    schedule = Schedule(**{
        attr: _parse_datetime(row.get(column)) for attr, column in SCHEDULE_COLUMNS.items()
    })
    contract_address = row.get("ido_presale_contract")
    chain_ref = None
    if contract_address:
        chain_ref = ChainRef(contract_address=contract_address, chain_id=int(row.get("chain_id") or 0))
    override = row.get("phase_override")
    return Campaign(
        id=str(row["id"]),
        name=row.get("project_name") or "",
        schedule=schedule,
        phase_override=Phase.parse(override) if override else None,
        current_phase=Phase.parse(row.get("current_phase") or Phase.UPCOMING.value),
        phase_updated_at=_parse_datetime(row.get("phase_updated_at")),
        chain_ref=chain_ref,
        raised_amount=_parse_decimal(row.get("real_current_raised")),
        participant_count=int(row.get("participant_count") or 0),
        hard_cap=_parse_decimal(row.get("hard_cap")),
        last_synced_at=_parse_datetime(row.get("stats_last_updated")),
        version=int(row.get("version") or 0),
    )


def fields_to_columns(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Translate Campaign attribute updates into project_submissions columns."""
    columns: Dict[str, Any] = {}
    for name, value in fields.items():
        if name == "schedule":
            for attr, column in SCHEDULE_COLUMNS.items():
                columns[column] = _format_datetime(getattr(value, attr))
        elif name == "chain_ref":
            columns["ido_presale_contract"] = value.contract_address if value else None
            columns["chain_id"] = value.chain_id if value else None
        elif name in ("phase_override", "current_phase"):
            columns[name] = Phase.parse(value).value if value is not None else None
        elif name == "phase_updated_at":
            columns[name] = _format_datetime(value)
        elif name == "last_synced_at":
            columns["stats_last_updated"] = _format_datetime(value)
        elif name == "raised_amount":
            columns["real_current_raised"] = str(value)
        elif name == "hard_cap":
            columns["hard_cap"] = str(value)
        elif name == "name":
            columns["project_name"] = value
        else:
            columns[name] = value

    if "raised_amount" in fields and fields.get("hard_cap"):
        columns["real_progress_percentage"] = float(fields["raised_amount"] / fields["hard_cap"] * 100)
    return columns


class RestCampaignStore(ICampaignStore):
    """
    Implementation of the campaign store over PostgREST.

    Uses the API_BASE_URL and API_KEY environment variables when no explicit
    values are passed.
    """

    def __init__(
        self,
        api_base_url: str = None,
        api_key: str = None,
        timeout: float = DEFAULT_API_TIMEOUT_SECONDS,
        session: requests.Session = None,
    ):
        """
        Initialize REST campaign store.

        Args:
            api_base_url: PostgREST root URL (e.g. https://<project>.supabase.co/rest/v1)
            api_key: Service key sent as apikey and bearer token
            timeout: Timeout in seconds for every request
            session: Optional requests session (shared connection pool)

        Raises:
            ConfigurationError: If API_BASE_URL is not provided and not set in environment.
        """
        self.api_base_url = (api_base_url or os.getenv("API_BASE_URL") or "").rstrip("/")
        if not self.api_base_url:
            raise ConfigurationError("API_BASE_URL must be set as environment variable or passed as parameter")
        self.api_key = api_key or os.getenv("API_KEY")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, prefer: str = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _table_url(self, table: str) -> str:
        return f"{self.api_base_url}/{table}"

    def _fetch_row(self, campaign_id: str) -> Dict[str, Any]:
        response = self.session.get(
            self._table_url(CAMPAIGNS_TABLE),
            params={"select": "*", "id": f"eq.{campaign_id}"},
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        rows = response.json()
        if not rows:
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")
        return rows[0]

    def get_campaign(self, campaign_id: str) -> Campaign:
        return row_to_campaign(self._fetch_row(campaign_id))

    def find_campaigns(
        self,
        phases: Optional[Iterable[Phase]] = None,
        override_is_null: Optional[bool] = None,
        has_chain_ref: Optional[bool] = None,
    ) -> List[Campaign]:
        params = {"select": "*"}
        if phases is not None:
            values = []
            for phase in phases:
                values.extend(PHASE_DB_VALUES.get(phase, (phase.value,)))
            params["current_phase"] = f"in.({','.join(values)})"
        if override_is_null is not None:
            params["phase_override"] = "is.null" if override_is_null else "not.is.null"
        if has_chain_ref is not None:
            params["ido_presale_contract"] = "not.is.null" if has_chain_ref else "is.null"

        try:
            response = self.session.get(
                self._table_url(CAMPAIGNS_TABLE),
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            rows = response.json()
        except requests.exceptions.RequestException as e:
            logging.warning(f"Failed to fetch campaigns from API: {e}")
            return []
        except ValueError as e:
            logging.warning(f"Failed to parse campaigns API response: {e}")
            return []

        campaigns = []
        for row in rows:
            try:
                campaigns.append(row_to_campaign(row))
            except (InvalidPhaseError, ValueError, KeyError, TypeError) as e:
                logging.warning(f"Skipping malformed campaign row {row.get('id')}: {e}")
        logging.debug(f"Fetched {len(campaigns)} campaigns from API")
        return campaigns

    def update_campaign(
        self,
        campaign_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Campaign:
        check_writable(fields)
        if expected_version is None:
            expected_version = int(self._fetch_row(campaign_id).get("version") or 0)

        body = fields_to_columns(fields)
        body["version"] = expected_version + 1
        response = self.session.patch(
            self._table_url(CAMPAIGNS_TABLE),
            params={"id": f"eq.{campaign_id}", "version": f"eq.{expected_version}"},
            json=body,
            headers=self._headers(prefer="return=representation"),
            timeout=self.timeout,
        )
        response.raise_for_status()
        rows = response.json()
        if not rows:
            # Nothing matched: either the id is unknown or the version moved on
            self._fetch_row(campaign_id)
            raise PersistenceConflictError(
                f"Campaign {campaign_id} changed since version {expected_version}"
            )
        return row_to_campaign(rows[0])

    def add_notification(self, notification: PhaseChangeNotification) -> None:
        response = self.session.post(
            self._table_url(NOTIFICATIONS_TABLE),
            json={
                "type": "phase_change",
                "project_id": notification.campaign_id,
                "phase": notification.new_phase.value,
                "old_phase": notification.old_phase.value if notification.old_phase else None,
                "message": notification.message,
                "created_at": notification.at.isoformat(),
            },
            headers=self._headers(prefer="return=minimal"),
            timeout=self.timeout,
        )
        response.raise_for_status()
