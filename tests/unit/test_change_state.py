from __future__ import annotations

import pytest

from apn_client.utils.errors import AmbiguousOrNotFoundError


@pytest.mark.unit
def test_change_state_runs_full_sequence(authed_client, adapter):
    assert authed_client.opportunities.change_state("O1234567", "Closed Lost") == "OK"

    names = [n for n, _ in adapter.calls]
    assert names[names.index("open_pipeline_manager"):] == [
        "open_pipeline_manager",
        "search_opportunity",
        "opportunity_links",
        "follow",
        "open_state_selector",
        "state_links",
        "follow",
        "confirm_state_change",
    ]
    assert ("opportunity_links", ("O1234567", False)) in adapter.calls
    assert ("state_links", ("Closed Lost", False)) in adapter.calls


@pytest.mark.unit
@pytest.mark.parametrize("matches", [0, 2])
def test_exact_match_requires_single_opportunity(authed_client, adapter, matches):
    adapter.opportunity_matches = matches

    with pytest.raises(AmbiguousOrNotFoundError):
        authed_client.opportunities.change_state("O12", "Closed Lost")

    assert adapter.called("follow") == 0
    assert adapter.called("confirm_state_change") == 0


@pytest.mark.unit
def test_ambiguous_state_aborts_before_confirm(authed_client, adapter):
    adapter.state_matches = 2

    with pytest.raises(AmbiguousOrNotFoundError) as excinfo:
        authed_client.opportunities.change_state("O1234567", "Closed")

    assert excinfo.value.query == "Closed"
    assert adapter.called("confirm_state_change") == 0


@pytest.mark.unit
def test_partial_match_takes_first_hit(authed_client, adapter):
    adapter.opportunity_matches = 3
    adapter.state_matches = 2

    assert authed_client.opportunities.change_state("O12", "Closed", partial_match=True) == "OK"

    assert ("opportunity_links", ("O12", True)) in adapter.calls
    assert adapter.called("confirm_state_change") == 1


@pytest.mark.unit
def test_partial_match_still_fails_when_nothing_matches(authed_client, adapter):
    adapter.opportunity_matches = 0

    with pytest.raises(AmbiguousOrNotFoundError):
        authed_client.opportunities.change_state("O12", "Closed", partial_match=True)


@pytest.mark.unit
@pytest.mark.parametrize(("opp_id", "state"), [("", "Closed"), ("O1", "")])
def test_change_state_requires_id_and_state(authed_client, opp_id, state):
    with pytest.raises(ValueError):
        authed_client.opportunities.change_state(opp_id, state)
