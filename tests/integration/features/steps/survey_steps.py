"""Step definitions for the encrypted survey integration features.

Every step talks HTTP through `context.client` (TestClient in-process or an
httpx.Client against a live API). Actors are named in the feature files and
mapped to per-scenario addresses.
"""

from __future__ import annotations

import csv
import hashlib
import io
import logging
from typing import Any, Dict, List

from behave import given, then, when

logger = logging.getLogger(__name__)

QUESTION_TYPES = {"single_choice": 0, "multiple_choice": 1, "rating": 2}
DAY = 86400


# ------------------
# Helpers
# ------------------


def _address(context, actor: str) -> str:
    digest = hashlib.sha1(f"{context.salt}:{actor}".encode("utf-8")).hexdigest()
    return "0x" + digest


def _headers(context, actor: str) -> Dict[str, str]:
    return {"X-Caller-Address": _address(context, actor)}


def _url(context, path: str) -> str:
    return f"{context.api_prefix}{path}"


def _ints(text: str) -> List[int]:
    return [int(v.strip()) for v in text.split(",") if v.strip()]


def _survey_id(context, name: str) -> int:
    surveys = context.vars["surveys"]
    assert name in surveys, f"Survey {name!r} was not created in this scenario"
    return surveys[name]


def _record(context, response) -> Any:
    context.response = response
    logger.info("step_response status=%s body=%s", response.status_code, response.text[:200])
    return response


def _create_survey(context, actor: str, name: str, start: int, end: int) -> None:
    texts, types, options = [], [], []
    for row in context.table:
        texts.append(row["text"])
        types.append(QUESTION_TYPES[row["type"]])
        options.append([o.strip() for o in row["options"].split(",")])
    resp = _record(
        context,
        context.client.post(
            _url(context, "/surveys"),
            json={
                "title": name,
                "category": "integration",
                "tags": ["behave"],
                "start_time": start,
                "end_time": end,
                "question_texts": texts,
                "question_types": types,
                "question_options": options,
            },
            headers=_headers(context, actor),
        ),
    )
    assert resp.status_code == 201, resp.text
    context.vars["surveys"][name] = resp.json()["survey_id"]


def _encrypt(context, actor: str, values: List[int]) -> List[Dict[str, str]]:
    inputs = []
    for value in values:
        resp = context.client.post(_url(context, "/fhe/inputs"), json={"value": value}, headers=_headers(context, actor))
        assert resp.status_code == 201, resp.text
        inputs.append(resp.json())
    return inputs


def _submit(context, actor: str, name: str, inputs: List[Dict[str, str]]) -> None:
    _record(
        context,
        context.client.post(
            _url(context, f"/surveys/{_survey_id(context, name)}/responses"),
            json={
                "encrypted_answers": [i["handle"] for i in inputs],
                "answer_proofs": [i["proof"] for i in inputs],
            },
            headers=_headers(context, actor),
        ),
    )


def _token(context, actor: str) -> Dict[str, Any]:
    resp = context.client.post(_url(context, "/fhe/tokens"), json={}, headers=_headers(context, actor))
    assert resp.status_code == 201, resp.text
    return resp.json()


# ------------------
# Given
# ------------------


@given('"{actor}" has created a survey "{name}" open now with questions:')
def step_create_open_survey(context, actor: str, name: str) -> None:
    now = context.now()
    _create_survey(context, actor, name, now - 60, now + DAY)


@given('"{actor}" has created a survey "{name}" opening tomorrow with questions:')
def step_create_future_survey(context, actor: str, name: str) -> None:
    now = context.now()
    _create_survey(context, actor, name, now + DAY, now + 2 * DAY)


# ------------------
# When
# ------------------


@given('"{actor}" answers survey "{name}" with {values}')
@when('"{actor}" answers survey "{name}" with {values}')
def step_answer(context, actor: str, name: str, values: str) -> None:
    _submit(context, actor, name, _encrypt(context, actor, _ints(values)))


@when('"{actor}" encrypts the answers {values}')
def step_encrypt(context, actor: str, values: str) -> None:
    context.vars["inputs"][actor] = _encrypt(context, actor, _ints(values))


@when('"{actor}" submits the answers encrypted by "{owner}" to survey "{name}"')
def step_replay(context, actor: str, owner: str, name: str) -> None:
    _submit(context, actor, name, context.vars["inputs"][owner])


@when('"{actor}" sets survey "{name}" active to {flag}')
def step_set_status(context, actor: str, name: str, flag: str) -> None:
    resp = _record(
        context,
        context.client.patch(
            _url(context, f"/surveys/{_survey_id(context, name)}/status"),
            json={"is_active": flag.strip().lower() == "true"},
            headers=_headers(context, actor),
        ),
    )
    assert resp.status_code == 200, resp.text


@when('"{actor}" grants "{viewer}" {rights} on survey "{name}"')
def step_grant(context, actor: str, viewer: str, rights: str, name: str) -> None:
    wanted = {r.strip() for r in rights.split(",")}
    _record(
        context,
        context.client.put(
            _url(context, f"/surveys/{_survey_id(context, name)}/permissions/{_address(context, viewer)}"),
            json={"can_view": "view" in wanted, "can_export": "export" in wanted, "can_manage": "manage" in wanted},
            headers=_headers(context, actor),
        ),
    )


@when('"{actor}" revokes "{viewer}" on survey "{name}"')
def step_revoke(context, actor: str, viewer: str, name: str) -> None:
    resp = _record(
        context,
        context.client.delete(
            _url(context, f"/surveys/{_survey_id(context, name)}/permissions/{_address(context, viewer)}"),
            headers=_headers(context, actor),
        ),
    )
    assert resp.status_code == 204, resp.text


@when('"{actor}" authorises all results of survey "{name}"')
def step_authorize_all(context, actor: str, name: str) -> None:
    _record(
        context,
        context.client.post(
            _url(context, f"/surveys/{_survey_id(context, name)}/authorizations/all"),
            headers=_headers(context, actor),
        ),
    )


@when('"{actor}" decrypts the results of survey "{name}"')
def step_decrypt_results(context, actor: str, name: str) -> None:
    resp = _record(
        context,
        context.client.post(
            _url(context, f"/surveys/{_survey_id(context, name)}/results"),
            json={"token": _token(context, actor)},
            headers=_headers(context, actor),
        ),
    )
    assert resp.status_code == 200, resp.text
    context.vars["summary"] = resp.json()


@when('"{actor}" exports the results of survey "{name}"')
def step_export(context, actor: str, name: str) -> None:
    _record(
        context,
        context.client.post(
            _url(context, f"/surveys/{_survey_id(context, name)}/results.csv"),
            json={"token": _token(context, actor)},
            headers=_headers(context, actor),
        ),
    )


# ------------------
# Then
# ------------------


@then("the response status is {status:d}")
def step_status(context, status: int) -> None:
    assert context.response is not None, "No request has been made"
    assert context.response.status_code == status, context.response.text


@then('the problem code is "{code}"')
def step_problem_code(context, code: str) -> None:
    assert context.response.headers.get("content-type", "").startswith("application/problem+json")
    assert context.response.json().get("code") == code, context.response.text


@then('"{actor}" has not responded to survey "{name}"')
def step_not_responded(context, actor: str, name: str) -> None:
    resp = context.client.get(
        _url(context, f"/surveys/{_survey_id(context, name)}/responses/{_address(context, actor)}/exists")
    )
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"has_responded": False}


@then('the decrypted total of survey "{name}" is {total:d}')
def step_total(context, name: str, total: int) -> None:
    summary = context.vars["summary"]
    assert summary["survey_id"] == _survey_id(context, name)
    assert summary["total_responses"] == total


@then("the decrypted counts of question {index:d} are {values}")
def step_counts(context, index: int, values: str) -> None:
    question = context.vars["summary"]["questions"][index]
    assert [b["count"] for b in question["buckets"]] == _ints(values)


@then("the CSV has {rows:d} rows")
def step_csv_rows(context, rows: int) -> None:
    assert context.response.headers.get("content-type", "").startswith("text/csv")
    parsed = list(csv.DictReader(io.StringIO(context.response.text)))
    assert len(parsed) == rows
