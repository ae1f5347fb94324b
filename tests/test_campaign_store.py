"""
Test cases for the campaign store implementations.
"""
import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import Mock, patch

import requests

from launchpad.adapters.campaign_store import InMemoryCampaignStore
from launchpad.adapters.rest_campaign_store import RestCampaignStore, fields_to_columns, row_to_campaign
from launchpad.domain.campaign import Campaign, ChainRef, PhaseChangeNotification, Schedule
from launchpad.domain.phase import Phase
from launchpad.errors import CampaignNotFoundError, ConfigurationError, InvalidPhaseError, PersistenceConflictError

T = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
POOL = "0x3B419D3Fb4E603507831F3c40fBb84FC037Ed15e"
API = "https://example.supabase.co/rest/v1"


def make_campaign(campaign_id, **kwargs):
    return Campaign(id=campaign_id, schedule=Schedule(sale_start=T, sale_end=T + timedelta(days=1)), **kwargs)


def make_row(**overrides):
    row = {
        "id": 7,
        "project_name": "Whalespad",
        "presale_start": "2026-03-01T12:00:00Z",
        "presale_end": "2026-03-02T12:00:00+00:00",
        "whitelist_start": None,
        "whitelist_end": None,
        "claim_start": None,
        "listing_date": None,
        "current_phase": "live",
        "phase_override": None,
        "phase_updated_at": None,
        "ido_presale_contract": POOL,
        "chain_id": 97,
        "real_current_raised": "12.5",
        "hard_cap": 100,
        "participant_count": 3,
        "stats_last_updated": None,
        "version": 2,
    }
    row.update(overrides)
    return row


def make_response(payload):
    response = Mock()
    response.json.return_value = payload
    return response


class TestInMemoryCampaignStore(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryCampaignStore([
            make_campaign("live", current_phase=Phase.LIVE, chain_ref=ChainRef(POOL, 97)),
            make_campaign("forced", current_phase=Phase.CLAIMABLE, phase_override=Phase.CLAIMABLE),
            make_campaign("upcoming"),
        ])

    def test_filters(self):
        ids = lambda campaigns: sorted(c.id for c in campaigns)

        self.assertEqual(ids(self.store.find_campaigns()), ["forced", "live", "upcoming"])
        self.assertEqual(ids(self.store.find_campaigns(phases=[Phase.LIVE, Phase.CLAIMABLE])), ["forced", "live"])
        self.assertEqual(ids(self.store.find_campaigns(override_is_null=True)), ["live", "upcoming"])
        self.assertEqual(ids(self.store.find_campaigns(override_is_null=False)), ["forced"])
        self.assertEqual(ids(self.store.find_campaigns(has_chain_ref=True)), ["live"])

    def test_reads_are_snapshots(self):
        campaign = self.store.get_campaign("live")
        campaign.raised_amount = Decimal(999)

        self.assertEqual(self.store.get_campaign("live").raised_amount, Decimal(0))

    def test_update_bumps_version(self):
        updated = self.store.update_campaign("live", {"raised_amount": Decimal(5)}, expected_version=0)

        self.assertEqual(updated.version, 1)
        self.assertEqual(updated.raised_amount, Decimal(5))

    def test_stale_version_is_rejected_and_nothing_written(self):
        self.store.update_campaign("live", {"participant_count": 1})

        with self.assertRaises(PersistenceConflictError):
            self.store.update_campaign("live", {"participant_count": 2, "raised_amount": Decimal(9)}, expected_version=0)

        campaign = self.store.get_campaign("live")
        self.assertEqual((campaign.participant_count, campaign.raised_amount), (1, Decimal(0)))

    def test_unknown_field_and_campaign(self):
        with self.assertRaises(ValueError):
            self.store.update_campaign("live", {"version": 10})
        with self.assertRaises(CampaignNotFoundError):
            self.store.get_campaign("missing")
        with self.assertRaises(CampaignNotFoundError):
            self.store.update_campaign("missing", {"participant_count": 1})


class TestRowMapping(unittest.TestCase):

    def test_row_to_campaign(self):
        campaign = row_to_campaign(make_row())

        self.assertEqual(campaign.id, "7")
        self.assertEqual(campaign.name, "Whalespad")
        self.assertEqual(campaign.schedule.sale_start, T)
        self.assertEqual(campaign.schedule.sale_end, T + timedelta(days=1))
        self.assertEqual(campaign.current_phase, Phase.LIVE)
        self.assertEqual(campaign.chain_ref, ChainRef(POOL, 97))
        self.assertEqual(campaign.raised_amount, Decimal("12.5"))
        self.assertEqual(campaign.hard_cap, Decimal(100))
        self.assertEqual(campaign.version, 2)

    def test_legacy_filled_value_reads_as_processing(self):
        campaign = row_to_campaign(make_row(current_phase="filled", phase_override="filled"))

        self.assertEqual(campaign.current_phase, Phase.PROCESSING)
        self.assertEqual(campaign.phase_override, Phase.PROCESSING)

    def test_trimmed_fractional_seconds(self):
        campaign = row_to_campaign(make_row(
            presale_start="2026-03-01T12:00:00.5+00:00",
            stats_last_updated="2026-03-01T12:00:00.25Z",
        ))

        self.assertEqual(campaign.schedule.sale_start, T + timedelta(milliseconds=500))
        self.assertEqual(campaign.last_synced_at, T + timedelta(milliseconds=250))

    def test_unknown_override_raises(self):
        with self.assertRaises(InvalidPhaseError):
            row_to_campaign(make_row(phase_override="paused"))

    def test_fields_to_columns(self):
        columns = fields_to_columns({
            "raised_amount": Decimal(25),
            "hard_cap": Decimal(100),
            "last_synced_at": T,
            "current_phase": Phase.PROCESSING,
        })

        self.assertEqual(columns["real_current_raised"], "25")
        self.assertEqual(columns["stats_last_updated"], T.isoformat())
        self.assertEqual(columns["current_phase"], "processing")
        self.assertEqual(columns["real_progress_percentage"], 25.0)


class TestRestCampaignStore(unittest.TestCase):
    """Test cases for the PostgREST store with a mocked session."""

    def setUp(self):
        self.session = Mock()
        self.store = RestCampaignStore(api_base_url=API + "/", api_key="service-key", timeout=5, session=self.session)

    def test_requires_base_url(self):
        with patch.dict("os.environ", {}, clear=True):
            with self.assertRaises(ConfigurationError):
                RestCampaignStore(session=self.session)

    def test_find_campaigns_query(self):
        self.session.get.return_value = make_response([make_row()])

        campaigns = self.store.find_campaigns(
            phases=[Phase.LIVE, Phase.PROCESSING],
            override_is_null=True,
            has_chain_ref=True,
        )

        self.assertEqual([c.id for c in campaigns], ["7"])
        args, kwargs = self.session.get.call_args
        self.assertEqual(args[0], f"{API}/project_submissions")
        self.assertEqual(kwargs["params"], {
            "select": "*",
            "current_phase": "in.(live,processing,filled)",
            "phase_override": "is.null",
            "ido_presale_contract": "not.is.null",
        })
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer service-key")
        self.assertEqual(kwargs["timeout"], 5)

    def test_malformed_rows_are_skipped(self):
        self.session.get.return_value = make_response([
            make_row(id=1, phase_override="paused"),
            make_row(id=2, presale_start="not a date"),
            make_row(id=3),
        ])

        campaigns = self.store.find_campaigns()

        self.assertEqual([c.id for c in campaigns], ["3"])

    def test_find_campaigns_request_failure_returns_empty(self):
        self.session.get.side_effect = requests.exceptions.ConnectionError("refused")

        self.assertEqual(self.store.find_campaigns(), [])

    def test_get_campaign_not_found(self):
        self.session.get.return_value = make_response([])

        with self.assertRaises(CampaignNotFoundError):
            self.store.get_campaign("42")

    def test_update_is_guarded_by_version(self):
        self.session.patch.return_value = make_response([make_row(current_phase="processing", version=3)])

        campaign = self.store.update_campaign(
            "7",
            {"current_phase": Phase.PROCESSING, "phase_updated_at": T},
            expected_version=2,
        )

        self.assertEqual(campaign.current_phase, Phase.PROCESSING)
        self.assertEqual(campaign.version, 3)
        kwargs = self.session.patch.call_args.kwargs
        self.assertEqual(kwargs["params"], {"id": "eq.7", "version": "eq.2"})
        self.assertEqual(kwargs["json"], {
            "current_phase": "processing",
            "phase_updated_at": T.isoformat(),
            "version": 3,
        })
        self.assertEqual(kwargs["headers"]["Prefer"], "return=representation")

    def test_update_without_version_reads_it_first(self):
        self.session.get.return_value = make_response([make_row(version=5)])
        self.session.patch.return_value = make_response([make_row(version=6)])

        self.store.update_campaign("7", {"participant_count": 4})

        self.assertEqual(self.session.patch.call_args.kwargs["params"]["version"], "eq.5")

    def test_update_conflict(self):
        self.session.patch.return_value = make_response([])
        self.session.get.return_value = make_response([make_row(version=4)])

        with self.assertRaises(PersistenceConflictError):
            self.store.update_campaign("7", {"participant_count": 4}, expected_version=2)

    def test_update_unknown_campaign(self):
        self.session.patch.return_value = make_response([])
        self.session.get.return_value = make_response([])

        with self.assertRaises(CampaignNotFoundError):
            self.store.update_campaign("7", {"participant_count": 4}, expected_version=2)

    def test_add_notification(self):
        self.session.post.return_value = make_response(None)

        self.store.add_notification(PhaseChangeNotification(
            campaign_id="7",
            old_phase=Phase.LIVE,
            new_phase=Phase.PROCESSING,
            at=T,
            message="Campaign Whalespad entered processing phase",
        ))

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], f"{API}/notifications")
        self.assertEqual(kwargs["json"], {
            "type": "phase_change",
            "project_id": "7",
            "phase": "processing",
            "old_phase": "live",
            "message": "Campaign Whalespad entered processing phase",
            "created_at": T.isoformat(),
        })


if __name__ == "__main__":
    unittest.main()
