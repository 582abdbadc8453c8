"""Unit tests for entity models."""

import pytest
from datetime import date, timedelta

from models import (
    Company,
    Person,
    PEFirm,
    EntityType,
    ProspectStatus,
    entity_from_dict,
    casefold_name,
)
from network.errors import InvalidIntervalError


class TestCasefoldName:
    """Test exact-match name form."""

    def test_case_and_whitespace_collapse(self):
        assert casefold_name("  ACME   Corp ") == "acme corp"

    def test_normalized_name_is_computed(self):
        company = Company(name="Acme  CORP")
        assert company.normalized_name == "acme corp"


class TestCompanyDefaults:
    """Classification flags default to false."""

    def test_flags_default_false(self):
        company = Company(name="Acme")
        assert company.is_client is False
        assert company.is_prospect is False
        assert company.is_active_client is False

    def test_entity_type_fixed(self):
        assert Company(name="Acme").entity_type == EntityType.COMPANY.value
        assert Person(name="Jane").entity_type == "PERSON"
        assert PEFirm(name="Apex").entity_type == "PE_FIRM"

    def test_name_required(self):
        with pytest.raises(ValueError):
            Company(name="")

    def test_name_whitespace_stripped(self):
        assert Company(name="  Acme  ").name == "Acme"


class TestActiveClient:
    """is_active_client is derived from the client fields on read."""

    def test_started_yesterday_no_end(self):
        company = Company(name="Acme")
        company.set_client_status(True, date.today() - timedelta(days=1))
        assert company.is_active_client is True

    def test_ended_yesterday(self):
        company = Company(name="Acme")
        company.set_client_status(True, date.today() - timedelta(days=30), date.today() - timedelta(days=1))
        assert company.is_active_client is False

    def test_future_end(self):
        company = Company(name="Acme")
        company.set_client_status(True, date.today() - timedelta(days=30), date.today() + timedelta(days=30))
        assert company.is_active_client is True

    def test_ends_today_is_not_active(self):
        company = Company(name="Acme")
        company.set_client_status(True, date.today() - timedelta(days=30), date.today())
        assert company.is_active_client is False

    def test_client_without_start_is_not_active(self):
        company = Company(name="Acme", is_client=True)
        assert company.is_active_client is False

    def test_not_client_is_never_active(self):
        company = Company(name="Acme")
        company.set_client_status(False, date(2020, 1, 1))
        assert company.is_active_client is False

    def test_as_of_evaluation(self):
        company = Company(name="Acme")
        company.set_client_status(True, date(2020, 1, 1), date(2022, 1, 1))
        assert company.is_active_client_on(date(2021, 6, 1)) is True
        assert company.is_active_client_on(date(2022, 1, 1)) is False

    def test_inverted_interval_rejected_and_unchanged(self):
        company = Company(name="Acme")
        company.set_client_status(True, date(2020, 1, 1))

        with pytest.raises(InvalidIntervalError):
            company.set_client_status(True, date(2021, 1, 1), date(2020, 6, 1))

        assert company.client_start_date == date(2020, 1, 1)
        assert company.client_end_date is None

    def test_serialized_form_carries_derived_flag(self):
        company = Company(name="Acme")
        company.set_client_status(True, date.today() - timedelta(days=1))
        assert company.model_dump()["is_active_client"] is True


class TestProspect:
    """Prospect fields are independent of client fields."""

    def test_client_and_prospect_at_once(self):
        company = Company(name="Acme")
        company.set_client_status(True, date(2020, 1, 1))
        company.set_prospect_status(True, ProspectStatus.QUALIFIED)
        assert company.is_client and company.is_prospect

    def test_added_date_defaults_to_today(self):
        company = Company(name="Acme")
        company.set_prospect_status(True)
        assert company.prospect_added_date == date.today()

    def test_added_date_kept_on_status_change(self):
        company = Company(name="Acme")
        company.set_prospect_status(True, added_date=date(2023, 3, 1))
        company.set_prospect_status(True, ProspectStatus.PITCHED)
        assert company.prospect_added_date == date(2023, 3, 1)
        assert company.prospect_status == ProspectStatus.PITCHED


class TestEntityFromDict:
    """Stored dicts come back as the right subclass."""

    def test_round_trip_picks_subclass(self):
        company = Company(name="Acme", identifiers={"domain": "acme.com"})
        company.set_client_status(True, date(2020, 1, 1))

        restored = entity_from_dict(company.model_dump(mode="json"))

        assert isinstance(restored, Company)
        assert restored.id == company.id
        assert restored.client_start_date == date(2020, 1, 1)

    def test_person_subclass(self):
        restored = entity_from_dict({"entity_type": "PERSON", "name": "Jane", "is_known_contact": True})
        assert isinstance(restored, Person)
        assert restored.is_known_contact is True

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            entity_from_dict({"entity_type": "FUND", "name": "X"})

    def test_summary(self):
        firm = PEFirm(name="Apex Partners")
        assert firm.summary() == {"id": firm.id, "entity_type": "PE_FIRM", "name": "Apex Partners"}
