from datetime import datetime, timezone

import pytest
from bson import ObjectId

from config import TriggerMode
from conftest import match_block_doc, time_block_doc, user_doc
from models.match import Alliance, CompLevel, Match, latest_completed_qual, parse_matches
from models.schedule_block import PopulatedScheduleBlock, ScheduleBlock, User
from services.errors import MatchFeedError, ScheduleShapeError


def test_user_from_document():
    user = User.from_document(user_doc("Ada", "111"))
    assert user.display_name == "Ada Scout"
    assert user.mention == "<@111>"


def test_user_missing_field_is_shape_error():
    doc = user_doc("Ada", "111")
    del doc["discordId"]
    with pytest.raises(ScheduleShapeError):
        User.from_document(doc)


def test_populated_block_keeps_role_order_and_empty_slots():
    doc = match_block_doc(20, 25, red3=user_doc("Rex", "6"), blue1=user_doc("Bea", "1"))
    block = PopulatedScheduleBlock.from_document(doc, TriggerMode.MATCHES)

    assert block.start == 20
    assert block.end == 25
    assert block.slots[0].first_name == "Bea"
    assert block.slots[5].first_name == "Rex"
    assert block.slots[1:5] == (None, None, None, None)
    assert block.pings() == "<@1><@6>"
    assert block.has_volunteers


def test_block_with_no_volunteers():
    block = PopulatedScheduleBlock.from_document(match_block_doc(3, 5), TriggerMode.MATCHES)
    assert not block.has_volunteers
    assert block.pings() == ""


def test_time_block_naive_dates_are_utc():
    doc = time_block_doc(datetime(2023, 4, 1, 18, 0), datetime(2023, 4, 1, 18, 30), min30=True)
    block = PopulatedScheduleBlock.from_document(doc, TriggerMode.TIME)
    assert block.start == datetime(2023, 4, 1, 18, 0, tzinfo=timezone.utc)
    assert block.far_sent
    assert not block.near_sent


def test_wrong_mode_fields_are_shape_error():
    with pytest.raises(ScheduleShapeError):
        PopulatedScheduleBlock.from_document(match_block_doc(3, 5), TriggerMode.TIME)


def test_slot_that_is_not_a_user_is_shape_error():
    with pytest.raises(ScheduleShapeError):
        PopulatedScheduleBlock.from_document(match_block_doc(3, 5, blue2="nobody"), TriggerMode.MATCHES)


def test_flag_with_wrong_type_is_shape_error():
    doc = match_block_doc(3, 5)
    doc["oneAway"] = "yes"
    with pytest.raises(ScheduleShapeError):
        PopulatedScheduleBlock.from_document(doc, TriggerMode.MATCHES)


def test_raw_block_keeps_slot_ids():
    ref = ObjectId()
    block = ScheduleBlock.from_document(match_block_doc(3, 5, red1=ref), TriggerMode.MATCHES)
    assert block.slot_ids == (None, None, None, ref, None, None)


def test_match_from_json():
    match = Match.from_json({"key": "2023joh_qm4", "comp_level": "qm", "match_number": 4,
                             "winning_alliance": "red", "event_key": "2023joh"})
    assert match.comp_level is CompLevel.QUAL
    assert match.winning_alliance is Alliance.RED
    assert match.is_finished


def test_match_empty_winner_is_unfinished():
    match = Match.from_json({"comp_level": "qm", "match_number": 4, "winning_alliance": ""})
    assert match.winning_alliance is None
    assert not match.is_finished


def test_malformed_match_is_feed_error():
    with pytest.raises(MatchFeedError):
        Match.from_json({"comp_level": "xx", "match_number": 4})
    with pytest.raises(MatchFeedError):
        parse_matches({"not": "a list"})


def test_latest_completed_skips_unfinished_top_match():
    matches = parse_matches([
        {"comp_level": "qm", "match_number": 17, "winning_alliance": "blue"},
        {"comp_level": "qm", "match_number": 19, "winning_alliance": ""},
        {"comp_level": "qm", "match_number": 18, "winning_alliance": "red"},
        {"comp_level": "sf", "match_number": 40, "winning_alliance": "red"},
    ])
    assert latest_completed_qual(matches) == 18


def test_latest_completed_none_when_nothing_played():
    matches = parse_matches([{"comp_level": "qm", "match_number": 1, "winning_alliance": None}])
    assert latest_completed_qual(matches) is None
