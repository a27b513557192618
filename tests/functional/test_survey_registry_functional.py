"""Functional tests for the survey registry: creation, status and lookups."""

from __future__ import annotations

import pytest

from encsurvey.logic.addresses import ZERO_HANDLE
from encsurvey.logic.errors import AuthorizationError, InvalidInputError, NotFoundError
from encsurvey.models.question_kind import QuestionType

from survey_helpers import ALICE, BOB, CREATOR, MULTI, RATING, SINGLE, make_survey, submit


def test_ids_are_sequential_from_zero_and_counter_tracks_them(contract):
    assert contract.survey_counter() == 0
    ids = [make_survey(contract, title=f"S{i}") for i in range(4)]
    assert ids == [0, 1, 2, 3]
    assert contract.survey_counter() == 4


def test_creation_stores_metadata_questions_and_tags(contract):
    sid = make_survey(
        contract,
        title="Team pulse",
        category="HR",
        tags=("weekly", "anon"),
        texts=("Mood?", "Tools used?", "Rate us"),
        types=(SINGLE, MULTI, RATING),
        options=(("Good", "Bad"), ("Git", "CI", "Docs"), ("stars",)),
        at=42,
    )
    info = contract.get_survey_info(sid)
    assert info.creator == CREATOR
    assert (info.title, info.category) == ("Team pulse", "HR")
    assert (info.created_at, info.start_time, info.end_time) == (42, 100, 200)
    assert info.question_count == 3
    assert info.exists and info.is_active
    assert contract.get_survey_tags(sid) == ["weekly", "anon"]

    multi = contract.get_question_info(sid, 1)
    assert multi.text == "Tools used?"
    assert multi.question_type is QuestionType.MULTIPLE_CHOICE
    assert multi.options == ["Git", "CI", "Docs"]
    assert multi.option_count == 3

    rating = contract.get_question_info(sid, 2)
    assert rating.question_type is QuestionType.RATING
    assert rating.options == ["stars"]


def test_creator_gets_explicit_full_permission_and_total_grant(contract):
    sid = make_survey(contract)
    perm = contract.get_permission(sid, CREATOR)
    assert (perm.can_view, perm.can_export, perm.can_manage, perm.exists) == (True, True, True, True)

    # total starts as an encrypted zero the creator can decrypt straight away
    token = contract.issue_token(CREATOR)
    total = contract.get_total_responses(sid)
    assert total != ZERO_HANDLE
    assert contract.user_decrypt([(total, None)], token) == {total: 0}


def test_creation_emits_survey_created_event(contract):
    sid = make_survey(contract, title="Hello", category="", texts=("a", "b"), types=(SINGLE, SINGLE), options=(("x",), ("y",)))
    events = contract.events(sid)
    assert events[0]["event"] == "SurveyCreated"
    assert events[0]["args"] == {
        "surveyId": sid,
        "creator": CREATOR,
        "title": "Hello",
        "category": "",
        "questionCount": 2,
    }


def test_creator_address_is_case_insensitive(contract):
    sid = make_survey(contract, creator="0x" + ALICE[2:].upper())
    assert contract.get_survey_info(sid).creator == ALICE


@pytest.mark.parametrize(
    "overrides, code",
    [
        ({"title": ""}, "INVALID_TITLE"),
        ({"start": 200, "end": 200}, "INVALID_TIME_RANGE"),
        ({"start": 300, "end": 200}, "INVALID_TIME_RANGE"),
        ({"texts": (), "types": (), "options": ()}, "INVALID_QUESTION_COUNT"),
        (
            {"texts": tuple(f"q{i}" for i in range(21)), "types": (SINGLE,) * 21, "options": (("a",),) * 21},
            "INVALID_QUESTION_COUNT",
        ),
        ({"texts": ("a", "b"), "types": (SINGLE,), "options": (("x",), ("y",))}, "QUESTION_ARRAY_MISMATCH"),
        ({"texts": ("a",), "types": (SINGLE,), "options": (("x",), ("y",))}, "QUESTION_ARRAY_MISMATCH"),
        ({"texts": ("",)}, "EMPTY_QUESTION_TEXT"),
        ({"options": ((),)}, "EMPTY_OPTIONS"),
        ({"types": (RATING,), "options": ((),)}, "EMPTY_OPTIONS"),
        ({"types": (7,)}, "INVALID_QUESTION_TYPE"),
    ],
)
def test_invalid_creation_is_rejected_without_state_change(contract, overrides, code):
    with pytest.raises(InvalidInputError) as exc:
        make_survey(contract, **overrides)
    assert exc.value.code == code
    assert contract.survey_counter() == 0
    assert contract.events() == []


def test_twenty_questions_is_the_upper_bound(contract):
    sid = make_survey(contract, texts=tuple(f"q{i}" for i in range(20)), types=(SINGLE,) * 20, options=(("a",),) * 20)
    assert contract.get_survey_info(sid).question_count == 20


def test_rejected_creation_does_not_consume_an_id(contract):
    make_survey(contract)
    with pytest.raises(InvalidInputError):
        make_survey(contract, title="")
    assert make_survey(contract) == 1


def test_status_change_requires_creator_or_manager(contract):
    sid = make_survey(contract)
    with pytest.raises(AuthorizationError) as exc:
        contract.set_survey_status(contract.context(ALICE), sid, False)
    assert exc.value.code == "NOT_MANAGER"
    assert contract.get_survey_info(sid).is_active is True

    contract.set_survey_status(contract.context(CREATOR), sid, False)
    assert contract.get_survey_info(sid).is_active is False

    contract.grant_permission(contract.context(CREATOR), sid, BOB, False, False, True)
    contract.set_survey_status(contract.context(BOB), sid, True)
    assert contract.get_survey_info(sid).is_active is True

    names = [e["event"] for e in contract.events(sid)]
    assert names.count("SurveyStatusChanged") == 2
    assert contract.events(sid)[-1]["args"] == {"surveyId": sid, "isActive": True}


def test_status_can_be_toggled_outside_the_time_window(contract):
    sid = make_survey(contract, start=100, end=200)
    contract.set_survey_status(contract.context(CREATOR, 999), sid, False)
    contract.set_survey_status(contract.context(CREATOR, 1), sid, True)
    assert contract.get_survey_info(sid).is_active is True


def test_view_only_permission_cannot_manage(contract):
    sid = make_survey(contract)
    contract.grant_permission(contract.context(CREATOR), sid, ALICE, True, True, False)
    with pytest.raises(AuthorizationError):
        contract.set_survey_status(contract.context(ALICE), sid, False)


def test_lookups_fail_for_unknown_survey_or_question(contract):
    sid = make_survey(contract)
    with pytest.raises(NotFoundError) as exc:
        contract.get_survey_info(sid + 1)
    assert exc.value.code == "SURVEY_NOT_FOUND"
    with pytest.raises(NotFoundError):
        contract.get_survey_tags(99)
    with pytest.raises(NotFoundError) as exc:
        contract.get_question_info(sid, 1)
    assert exc.value.code == "QUESTION_NOT_FOUND"
    with pytest.raises(NotFoundError):
        contract.get_question_info(sid, -1)
    with pytest.raises(NotFoundError):
        contract.set_survey_status(contract.context(CREATOR), 5, False)


def test_list_surveys_is_newest_first_with_acceptance_flag(contract, clock):
    first = make_survey(contract, title="old", at=10)
    second = make_survey(contract, title="new", at=20, start=300, end=400)
    third = make_survey(contract, title="paused", at=20)
    contract.set_survey_status(contract.context(CREATOR), third, False)

    clock.now = 150
    listed = contract.list_surveys()
    assert [s.survey_id for s in listed] == [third, second, first]
    accepting = {s.survey_id: s.accepting_responses for s in listed}
    assert accepting == {first: True, second: False, third: False}


def test_survey_fields_are_unchanged_by_responses(contract):
    sid = make_survey(contract)
    before = contract.get_survey_info(sid)
    submit(contract, ALICE, sid, [1])
    assert contract.get_survey_info(sid) == before
    assert contract.get_question_info(sid, 0).options == ["A", "B"]
