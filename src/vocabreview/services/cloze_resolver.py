"""Accepted answers and masking for cloze prompts."""
import logging
import re
from typing import List, Optional

from vocabreview.config import settings
from vocabreview.models.review_models import AnswerResult, ClozeAnswers, Feedback
from vocabreview.services.answer_evaluator import (
    GRADE_AGAIN,
    GRADE_GOOD,
    AnswerEvaluator,
    normalize_answer,
)
from vocabreview.services.morphology import MorphologicalAnalyzer, get_analyzer

logger = logging.getLogger(__name__)


class ClozeAnswerResolver:
    """Derives the surface forms a cloze answer may take and blanks them out."""

    def __init__(
        self,
        analyzer: Optional[MorphologicalAnalyzer] = None,
        blank_token: str = settings.review.blank_token,
    ):
        self.analyzer = analyzer or get_analyzer(settings.review.morphology)
        self.blank_token = blank_token

    def resolve(self, sentence: str, target: str) -> ClozeAnswers:
        """Collect the target's forms used in the sentence and mask them."""
        target_lower = normalize_answer(target)
        valid_answers = {target_lower} if target_lower else set()
        context_matches: List[str] = []

        if sentence and target_lower:
            for match in self.analyzer.find_literal(sentence, target_lower):
                context_matches.append(match.text)

            for phrase in self.analyzer.verb_phrases(sentence):
                if normalize_answer(phrase.infinitive) == target_lower and phrase.root:
                    context_matches.append(phrase.root)

            for phrase in self.analyzer.noun_phrases(sentence):
                if normalize_answer(phrase.singular_form) == target_lower and phrase.text:
                    context_matches.append(phrase.text)

        context_matches = list(dict.fromkeys(context_matches))
        valid_answers.update(match.lower() for match in context_matches)

        return ClozeAnswers(
            valid_answers=valid_answers,
            context_matches=context_matches,
            masked_sentence=self.mask(sentence or "", context_matches),
        )

    def mask(self, sentence: str, context_matches: List[str]) -> str:
        """Replace every distinct context match with the blank token."""
        forms = sorted(set(context_matches), key=len, reverse=True)
        if not forms:
            return sentence
        pattern = re.compile(
            r"(?<![\w'’])(?:" + "|".join(re.escape(form) for form in forms) + r")(?![\w'’])"
        )
        return pattern.sub(self.blank_token, sentence)

    def grade(
        self,
        answer: str,
        sentence: str,
        target: str,
        evaluator: Optional[AnswerEvaluator] = None,
    ) -> AnswerResult:
        """Grade a cloze answer against every accepted form, keeping the best."""
        evaluator = evaluator or AnswerEvaluator()
        cloze = self.resolve(sentence, target)

        result = AnswerResult(grade=GRADE_AGAIN, feedback=Feedback.INCORRECT, allow_retry=True)
        for valid_answer in sorted(cloze.valid_answers):
            candidate = evaluator.evaluate(answer, valid_answer)
            if candidate.grade > result.grade or (
                candidate.grade == result.grade and not candidate.allow_retry
            ):
                result = candidate

        if result.grade < GRADE_GOOD:
            return result

        normalized_answer = normalize_answer(answer)
        target_lower = normalize_answer(target)
        context_lower = [match.lower() for match in cloze.context_matches]
        has_context_match = normalized_answer in context_lower
        has_different_context = any(match and match != target_lower for match in context_lower)
        context_word = next(
            (match for match in cloze.context_matches if match.lower() != target_lower),
            cloze.context_matches[0] if cloze.context_matches else "",
        )

        if normalized_answer == target_lower and has_different_context and not has_context_match:
            logger.debug(f"Root match for {target!r}, sentence uses {context_word!r}")
            result.feedback = Feedback.ROOT_MATCH
            result.correct_context_word = context_word
        elif has_context_match or normalized_answer == target_lower:
            result.feedback = Feedback.EXACT
            result.correct_context_word = context_word
        return result
