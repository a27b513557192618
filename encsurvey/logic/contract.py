"""Transactional facade over the survey registry, tally engine and ACL bridge.

Each public method is one contract call. It opens a database transaction,
binds a ciphertext algebra to it and runs the corresponding logic function.
A `SurveyError` (or any other exception) rolls back every write made by the
call, including ciphertexts, grants and events.

Calls against the same database are serialised through `call_lock`, so
concurrent HTTP requests observe the same one-call-at-a-time ordering as a
ledger would.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, sessionmaker

from encsurvey.config import AppConfig
from encsurvey.db.base import call_lock, session_scope
from encsurvey.logic import aggregation, decryption, events, permissions, registry, results
from encsurvey.logic.addresses import ZERO_HANDLE, normalize_address
from encsurvey.logic.ciphertext import CiphertextAlgebra
from encsurvey.logic.context import CallContext
from encsurvey.logic.errors import AuthorizationError, SurveyError
from encsurvey.logic.shadow_algebra import ShadowAlgebra
from encsurvey.models.schemas import (
    DecryptionToken,
    EncryptedInput,
    PermissionInfo,
    QuestionInfo,
    ResponseInfo,
    ResultsSummary,
    SurveyInfo,
    SurveyListItem,
)

logger = logging.getLogger(__name__)

AlgebraFactory = Callable[[Session], CiphertextAlgebra]


class EncryptedSurveyContract:
    def __init__(
        self,
        factory: sessionmaker,
        config: AppConfig,
        *,
        clock: Optional[Callable[[], int]] = None,
        algebra_factory: Optional[AlgebraFactory] = None,
    ) -> None:
        self._factory = factory
        self._lock = call_lock(factory.kw["bind"])
        self.config = config
        self.address = config.contract.address
        self.clock: Callable[[], int] = clock or (lambda: int(time.time()))
        self._algebra_factory = algebra_factory or (
            lambda session: ShadowAlgebra(session, self.address, config.fhe.secret_key)
        )

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    def now(self) -> int:
        return int(self.clock())

    def context(self, sender: str, timestamp: Optional[int] = None) -> CallContext:
        return CallContext.of(sender, self.now() if timestamp is None else timestamp)

    @contextmanager
    def _call(self, name: str, ctx: Optional[CallContext] = None) -> Iterator[Session]:
        # Calls run one at a time: id and sequence allocation read max()+1
        try:
            with self._lock, session_scope(self._factory) as session:
                yield session
        except SurveyError as exc:
            logger.info(
                "call_rejected call=%s sender=%s code=%s detail=%s",
                name,
                ctx.sender if ctx else None,
                exc.code,
                exc.detail,
            )
            raise

    # ------------------------------------------------------------------
    # survey registry
    # ------------------------------------------------------------------

    def create_survey(
        self,
        ctx: CallContext,
        title: str,
        category: str,
        tags: Sequence[str],
        start_time: int,
        end_time: int,
        question_texts: Sequence[str],
        question_types: Sequence[int],
        question_options: Sequence[Sequence[str]],
    ) -> int:
        with self._call("createSurvey", ctx) as session:
            return registry.create_survey(
                session,
                self._algebra_factory(session),
                ctx,
                title=title,
                category=category,
                tags=tags,
                start_time=start_time,
                end_time=end_time,
                question_texts=question_texts,
                question_types=question_types,
                question_options=question_options,
                max_questions=self.config.contract.max_questions,
            )

    def set_survey_status(self, ctx: CallContext, survey_id: int, is_active: bool) -> None:
        with self._call("setSurveyStatus", ctx) as session:
            registry.set_survey_status(session, ctx, survey_id, is_active)

    def survey_counter(self) -> int:
        with self._call("surveyCounter") as session:
            return registry.survey_counter(session)

    def get_survey_info(self, survey_id: int) -> SurveyInfo:
        with self._call("getSurveyInfo") as session:
            return registry.get_survey_info(session, survey_id)

    def get_question_info(self, survey_id: int, question_index: int) -> QuestionInfo:
        with self._call("getQuestionInfo") as session:
            return registry.get_question_info(session, survey_id, question_index)

    def get_survey_tags(self, survey_id: int) -> List[str]:
        with self._call("getSurveyTags") as session:
            return registry.get_survey_tags(session, survey_id)

    def list_surveys(self) -> List[SurveyListItem]:
        with self._call("listSurveys") as session:
            return registry.list_surveys(session, self.now())

    # ------------------------------------------------------------------
    # responses and tallies
    # ------------------------------------------------------------------

    def submit_response(
        self,
        ctx: CallContext,
        survey_id: int,
        encrypted_answers: Sequence[str],
        answer_proofs: Sequence[str],
    ) -> None:
        with self._call("submitResponse", ctx) as session:
            aggregation.submit_response(
                session, self._algebra_factory(session), ctx, survey_id, encrypted_answers, answer_proofs
            )

    def get_question_option_counts(self, survey_id: int, question_index: int) -> List[str]:
        with self._call("getQuestionOptionCounts") as session:
            return aggregation.get_question_option_counts(session, survey_id, question_index)

    def get_total_responses(self, survey_id: int) -> str:
        with self._call("getTotalResponses") as session:
            return aggregation.get_total_responses(session, survey_id)

    def get_response(self, survey_id: int, respondent: str) -> ResponseInfo:
        with self._call("getResponse") as session:
            return aggregation.get_response(session, survey_id, respondent)

    def has_responded(self, survey_id: int, respondent: str) -> bool:
        with self._call("hasResponded") as session:
            return aggregation.has_responded(session, survey_id, respondent)

    # ------------------------------------------------------------------
    # permissions and ACL bridge
    # ------------------------------------------------------------------

    def grant_permission(
        self,
        ctx: CallContext,
        survey_id: int,
        viewer: str,
        can_view: bool,
        can_export: bool,
        can_manage: bool,
    ) -> None:
        with self._call("grantPermission", ctx) as session:
            permissions.grant_permission(
                session, self._algebra_factory(session), ctx, survey_id, viewer, can_view, can_export, can_manage
            )

    def revoke_permission(self, ctx: CallContext, survey_id: int, viewer: str) -> None:
        with self._call("revokePermission", ctx) as session:
            permissions.revoke_permission(session, ctx, survey_id, viewer)

    def get_permission(self, survey_id: int, address: str) -> PermissionInfo:
        with self._call("getPermission") as session:
            return permissions.get_permission(session, survey_id, address)

    def authorize_my_decryption(self, ctx: CallContext, survey_id: int) -> None:
        with self._call("authorizeMyDecryption", ctx) as session:
            permissions.authorize_my_decryption(session, self._algebra_factory(session), ctx, survey_id)

    def authorize_all_results_decryption(self, ctx: CallContext, survey_id: int) -> List[str]:
        with self._call("authorizeAllResultsDecryption", ctx) as session:
            return permissions.authorize_all_results_decryption(
                session, self._algebra_factory(session), ctx, survey_id
            )

    def events(self, survey_id: Optional[int] = None) -> List[Dict[str, Any]]:
        with self._call("events") as session:
            return events.list_events(session, survey_id)

    # ------------------------------------------------------------------
    # client-side encryption and the decryption oracle
    # ------------------------------------------------------------------

    def encrypt_input(self, user: str, value: int) -> EncryptedInput:
        with self._call("encryptInput") as session:
            algebra = ShadowAlgebra(session, self.address, self.config.fhe.secret_key)
            handle, proof = algebra.encrypt_input(user, value)
            return EncryptedInput(handle=handle, proof=proof)

    def issue_token(
        self,
        user: str,
        contract_addresses: Optional[Sequence[str]] = None,
        start_timestamp: Optional[int] = None,
        duration_days: int = 1,
    ) -> DecryptionToken:
        return decryption.issue_token(
            self.config.fhe.secret_key,
            user,
            contract_addresses or [self.address],
            self.now() if start_timestamp is None else start_timestamp,
            duration_days,
            max_duration_days=self.config.fhe.max_duration_days,
        )

    def user_decrypt(self, pairs: Sequence[Tuple[str, Optional[str]]], token: DecryptionToken) -> Dict[str, int]:
        with self._call("userDecrypt") as session:
            return decryption.user_decrypt(
                session,
                self.config.fhe.secret_key,
                [(h, c or self.address) for h, c in pairs],
                token,
                self.now(),
            )

    def decrypt_results(self, survey_id: int, token: DecryptionToken) -> ResultsSummary:
        """Decrypt every current result handle of a survey and summarise it.

        The token holder must already have been granted the handles, normally
        through `authorize_all_results_decryption`.
        """
        with self._call("decryptResults") as session:
            info = registry.get_survey_info(session, survey_id)
            questions = [
                registry.get_question_info(session, survey_id, q) for q in range(info.question_count)
            ]
            total_handle = aggregation.get_total_responses(session, survey_id)
            handles = [
                aggregation.get_question_option_counts(session, survey_id, q) for q in range(info.question_count)
            ]
            wanted = [total_handle] + [h for row in handles for h in row if h != ZERO_HANDLE]
            values = decryption.user_decrypt(
                session,
                self.config.fhe.secret_key,
                [(h, self.address) for h in wanted],
                token,
                self.now(),
            )
            counts = [[values.get(h, 0) for h in row] for row in handles]
            return results.summarize_results(info, questions, values[total_handle], counts)

    def export_results_csv(self, survey_id: int, token: DecryptionToken) -> bytes:
        user = normalize_address(token.user_address)
        with self._call("exportResults") as session:
            survey = registry.load_survey(session, survey_id)
            if not permissions.can_export(session, survey, user):
                raise AuthorizationError("NOT_EXPORTER", f"{user} may not export results of survey {survey_id}")
        return results.export_results_csv(self.decrypt_results(survey_id, token))


__all__ = ["EncryptedSurveyContract", "AlgebraFactory"]
