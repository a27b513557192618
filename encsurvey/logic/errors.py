"""Domain error hierarchy for contract calls.

Every rejection carries a stable `code` and the HTTP status the API layer
renders it with. Raising any of these inside a contract call rolls back the
whole call.
"""

from __future__ import annotations

from typing import Dict


class SurveyError(Exception):
    status = 400
    title = "Bad Request"

    def __init__(self, code: str, detail: str) -> None:
        super().__init__(detail)
        self.code = code
        self.detail = detail

    def to_problem(self) -> Dict[str, object]:
        return {
            "title": self.title,
            "status": self.status,
            "detail": self.detail,
            "code": self.code,
        }


class NotFoundError(SurveyError):
    status = 404
    title = "Not Found"


class InvalidInputError(SurveyError):
    status = 422
    title = "Invalid Request"


class StateConflictError(SurveyError):
    status = 409
    title = "Conflict"


class AuthorizationError(SurveyError):
    status = 403
    title = "Forbidden"


class InvalidProofError(InvalidInputError):
    """An encrypted input whose proof does not bind it to this contract and caller."""

    def __init__(self, detail: str = "encrypted input proof is invalid") -> None:
        super().__init__("INVALID_INPUT_PROOF", detail)


class DecryptionDeniedError(AuthorizationError):
    pass


def survey_not_found(survey_id: int) -> NotFoundError:
    return NotFoundError("SURVEY_NOT_FOUND", f"survey {survey_id} does not exist")


def question_not_found(survey_id: int, question_index: int) -> NotFoundError:
    return NotFoundError(
        "QUESTION_NOT_FOUND", f"survey {survey_id} has no question {question_index}"
    )


__all__ = [
    "SurveyError",
    "NotFoundError",
    "InvalidInputError",
    "StateConflictError",
    "AuthorizationError",
    "InvalidProofError",
    "DecryptionDeniedError",
    "survey_not_found",
    "question_not_found",
]
