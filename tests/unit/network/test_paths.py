"""Unit tests for ConnectionPathFinder tiers and ranking."""

import pytest
from datetime import date

from models import PathTier, RelationshipKind
from network.errors import NotFoundError, MalformedPayloadError

AS_OF = date(2024, 6, 1)


def tiers(paths):
    return [int(p.tier) for p in paths]


class TestPersonBridges:
    """Tiers 1, 3 and 6."""

    def test_former_employee_now_at_target(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, home, date(2015, 1, 1), date(2019, 1, 1))
        build.employ(jane, target, date(2019, 2, 1))

        paths = path_finder.find_paths([home.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.FORMER_EMPLOYEE_NOW_AT_TARGET]
        path = paths[0]
        assert path.length == 2
        assert [e.id for e in path.entities] == [home.id, jane.id, target.id]
        assert path.explanation == "Jane formerly at Home Co, now at Target Co"

    def test_current_employee_formerly_at_target(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, target, date(2010, 1, 1), date(2015, 1, 1))
        build.employ(jane, home, date(2016, 1, 1))

        paths = path_finder.find_paths([home.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.CURRENT_EMPLOYEE_FORMERLY_AT_TARGET]

    def test_mutual_former_employee(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, home, date(2010, 1, 1), date(2012, 1, 1))
        build.employ(jane, target, date(2012, 1, 1), date(2016, 1, 1))

        paths = path_finder.find_paths([home.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.MUTUAL_FORMER_EMPLOYEE]

    def test_mutual_former_dropped_when_person_rejoined(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, home, date(2010, 1, 1), date(2012, 1, 1))
        build.employ(jane, target, date(2012, 1, 1), date(2016, 1, 1))
        build.employ(jane, target, date(2020, 1, 1))

        paths = path_finder.find_paths([home.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.FORMER_EMPLOYEE_NOW_AT_TARGET]

    def test_current_at_both_is_not_a_tier(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, home, date(2018, 1, 1))
        build.board(jane, target, date(2020, 1, 1))

        assert path_finder.find_paths([home.id], target.id, as_of_date=AS_OF) == []

    def test_former_stint_ignored_while_back_at_home(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, home, date(2010, 1, 1), date(2012, 1, 1))
        build.employ(jane, home, date(2015, 1, 1))
        build.employ(jane, target, date(2016, 1, 1))

        assert path_finder.find_paths([home.id], target.id, as_of_date=AS_OF) == []

    def test_former_stint_ignored_while_back_at_target(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, target, date(2010, 1, 1), date(2012, 1, 1))
        build.employ(jane, target, date(2016, 1, 1))
        build.employ(jane, home, date(2015, 1, 1))

        assert path_finder.find_paths([home.id], target.id, as_of_date=AS_OF) == []

    def test_board_seats_and_firm_employment_count(self, build, path_finder):
        firm = build.pe_firm("Apex Partners", is_client=True)
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.store.record_relationship(
            RelationshipKind.PE_FIRM_EMPLOYMENT, jane.id, firm.id, date(2012, 1, 1), date(2018, 1, 1)
        )
        build.board(jane, target, date(2019, 1, 1))

        paths = path_finder.find_paths([firm.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.FORMER_EMPLOYEE_NOW_AT_TARGET]


class TestOwnershipChains:
    """Tiers 2, 4 and 5."""

    def test_current_ownership(self, build, path_finder):
        firm = build.pe_firm("Apex Partners", is_client=True)
        target = build.company("Target Co")
        build.own(firm, target, date(2021, 1, 1))

        paths = path_finder.find_paths([firm.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.CURRENT_OWNERSHIP]
        assert paths[0].explanation == "Apex Partners currently owns Target Co"

    def test_current_ownership_through_holding(self, build, path_finder):
        firm = build.pe_firm("Apex Partners", is_client=True)
        holding = build.company("Holding Co")
        target = build.company("Target Co")
        build.own(firm, holding, date(2019, 1, 1))
        build.own(holding, target, date(2020, 1, 1))

        paths = path_finder.find_paths([firm.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.CURRENT_OWNERSHIP]
        assert paths[0].length == 2

    def test_former_ownership(self, build, path_finder):
        firm = build.pe_firm("Apex Partners", is_client=True)
        target = build.company("Target Co")
        build.own(firm, target, date(2015, 1, 1), date(2020, 1, 1))

        paths = path_finder.find_paths([firm.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.FORMER_OWNERSHIP]

    def test_chain_with_one_former_edge_is_former(self, build, path_finder):
        firm = build.pe_firm("Apex Partners", is_client=True)
        holding = build.company("Holding Co")
        target = build.company("Target Co")
        build.own(firm, holding, date(2019, 1, 1))
        build.own(holding, target, date(2015, 1, 1), date(2020, 1, 1))

        paths = path_finder.find_paths([firm.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.FORMER_OWNERSHIP]

    def test_common_owner(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        firm = build.pe_firm("Apex Partners")
        build.own(firm, home, date(2018, 1, 1))
        build.own(firm, target, date(2015, 1, 1), date(2021, 1, 1))

        paths = path_finder.find_paths([home.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.COMMON_PE_OWNER]
        assert paths[0].explanation == "Apex Partners owns or owned both Home Co and Target Co"

    def test_common_company_owner_is_not_a_tier(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        parent = build.company("Parent Co")
        build.own(parent, home, date(2018, 1, 1))
        build.own(parent, target, date(2019, 1, 1))

        assert path_finder.find_paths([home.id], target.id, as_of_date=AS_OF) == []

    def test_target_owning_home_is_not_a_tier(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        build.own(target, home, date(2018, 1, 1))

        assert path_finder.find_paths([home.id], target.id, as_of_date=AS_OF) == []

    def test_co_investors_are_not_a_tier(self, build, path_finder):
        firm = build.pe_firm("Apex Partners", is_client=True)
        target_firm = build.pe_firm("Other Capital")
        portfolio = build.company("Shared Portfolio Co")
        build.own(firm, portfolio, date(2018, 1, 1))
        build.own(target_firm, portfolio, date(2019, 1, 1))

        assert path_finder.find_paths([firm.id], target_firm.id, as_of_date=AS_OF) == []


class TestRankingAndLimits:
    """Ordering, bounds and temporal cut-offs."""

    def test_tier_one_before_tier_five(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        firm = build.pe_firm("Apex Partners")
        build.own(firm, home, date(2023, 1, 1))
        build.own(firm, target, date(2023, 1, 1))
        jane = build.person("Jane")
        build.employ(jane, home, date(2010, 1, 1), date(2012, 1, 1))
        build.employ(jane, target, date(2012, 1, 1))

        paths = path_finder.find_paths([home.id], target.id, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.FORMER_EMPLOYEE_NOW_AT_TARGET, PathTier.COMMON_PE_OWNER]

    def test_shorter_path_first_within_tier(self, build, path_finder):
        firm = build.pe_firm("Apex Partners", is_client=True)
        holding = build.company("Holding Co")
        target = build.company("Target Co")
        build.own(firm, target, date(2010, 1, 1))
        build.own(firm, holding, date(2022, 1, 1))
        build.own(holding, target, date(2022, 1, 1))

        paths = path_finder.find_paths([firm.id], target.id, as_of_date=AS_OF)

        assert [p.length for p in paths] == [1, 2]

    def test_recent_edge_first_within_tier_and_length(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        old, new = build.person("Old Hand"), build.person("New Hire")
        build.employ(old, home, date(2000, 1, 1), date(2005, 1, 1))
        build.employ(old, target, date(2005, 1, 1))
        build.employ(new, home, date(2018, 1, 1), date(2020, 1, 1))
        build.employ(new, target, date(2020, 1, 1))

        paths = path_finder.find_paths([home.id], target.id, as_of_date=AS_OF)

        assert [p.entities[1].id for p in paths] == [new.id, old.id]

    def test_max_path_length(self, build, path_finder):
        firm = build.pe_firm("Apex Partners", is_client=True)
        a, b = build.company("A"), build.company("B")
        target = build.company("Target Co")
        build.own(firm, a, date(2019, 1, 1))
        build.own(a, b, date(2019, 1, 1))
        build.own(b, target, date(2019, 1, 1))

        assert path_finder.find_paths([firm.id], target.id, max_path_length=2, as_of_date=AS_OF) == []
        assert len(path_finder.find_paths([firm.id], target.id, max_path_length=3, as_of_date=AS_OF)) == 1

    def test_cyclic_ownership_terminates(self, build, path_finder):
        home = build.client("Home Co")
        sibling = build.company("Sibling Co")
        target = build.company("Target Co")
        build.own(home, sibling, date(2019, 1, 1))
        build.own(sibling, home, date(2019, 1, 1))
        build.own(sibling, target, date(2020, 1, 1))

        paths = path_finder.find_paths([home.id], target.id, max_path_length=6, as_of_date=AS_OF)

        assert tiers(paths) == [PathTier.CURRENT_OWNERSHIP]

    def test_relationships_after_as_of_ignored(self, build, path_finder):
        home = build.client("Home Co")
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, home, date(2015, 1, 1), date(2019, 1, 1))
        build.employ(jane, target, date(2019, 2, 1))

        assert path_finder.find_paths([home.id], target.id, as_of_date=date(2018, 1, 1)) == []

    def test_as_of_changes_tier(self, build, path_finder):
        home = build.client("Home Co", start=date(2010, 1, 1))
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, target, date(2010, 1, 1), date(2023, 1, 1))
        build.employ(jane, home, date(2015, 1, 1))

        then = path_finder.find_paths([home.id], target.id, as_of_date=date(2020, 1, 1))
        now = path_finder.find_paths([home.id], target.id, as_of_date=AS_OF)

        assert then == []  # current at both in 2020
        assert tiers(now) == [PathTier.CURRENT_EMPLOYEE_FORMERLY_AT_TARGET]

    def test_default_home_set(self, build, path_finder):
        home = build.client("Home Co", start=date(2020, 1, 1))
        build.client("Churned Co", start=date(2010, 1, 1), end=date(2012, 1, 1))
        target = build.company("Target Co")
        jane = build.person("Jane")
        build.employ(jane, home, date(2020, 1, 1), date(2022, 1, 1))
        build.employ(jane, target, date(2022, 1, 1))

        paths = path_finder.find_paths(None, target.id, as_of_date=AS_OF)

        assert [p.home.id for p in paths] == [home.id]

    def test_target_in_home_set(self, build, path_finder):
        home = build.client("Home Co")
        assert path_finder.find_paths([home.id], home.id, as_of_date=AS_OF) == []

    def test_unknown_target(self, path_finder):
        with pytest.raises(NotFoundError):
            path_finder.find_paths([], "ghost", as_of_date=AS_OF)

    def test_unknown_home(self, build, path_finder):
        target = build.company("Target Co")
        with pytest.raises(NotFoundError):
            path_finder.find_paths(["ghost"], target.id, as_of_date=AS_OF)

    def test_bad_max_length(self, build, path_finder):
        target = build.company("Target Co")
        with pytest.raises(MalformedPayloadError):
            path_finder.find_paths([], target.id, max_path_length=0)
