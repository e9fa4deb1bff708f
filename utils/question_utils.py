"""Question dispatch for the feedback form.

Each campaign question type has a handler that knows how to turn a raw form
value into the type's answer shape, what counts as "answered" for that type
and how the question is presented to the form template. The form, the
response accumulator and the validation gate only ever talk to handlers, so
per-type rules live in one place.

Typical usage example:
    handler = get_question_handler(question)
    handler.capture(request.form.get(handler.input_name), on_change)
"""

from typing import Any, Callable, Optional

from models.campaign import (
    CampaignQuestion,
    MultipleChoiceQuestion,
    RatingQuestion,
)
from models.feedback import ResponseValue
from utils.logging_utils import get_logger

logger = get_logger(__name__, level="INFO")

YES_VALUES = ("yes", "true")
NO_VALUES = ("no", "false")


class QuestionHandler:
    """Base handler. Holds the question and no session state."""

    template = "questions/unsupported.html"

    def __init__(self, question: CampaignQuestion):
        self.question = question

    @property
    def input_name(self) -> str:
        """Name of the form field carrying this question's answer."""
        return f"q-{self.question.id}"

    def parse(self, raw: Optional[str]) -> Optional[ResponseValue]:
        """Convert a raw form value to this type's answer shape.

        Returns:
            The answer, or None when ``raw`` does not conform to the type.
        """
        return None

    def capture(
        self, raw: Optional[str], on_change: Callable[[ResponseValue], Any]
    ) -> bool:
        """Emit the parsed answer through ``on_change`` if it conforms.

        Args:
            raw: The raw value posted by the form.
            on_change: Callback receiving the typed answer.

        Returns:
            bool: True if a value was emitted.
        """
        value = self.parse(raw)
        if value is None:
            return False
        on_change(value)
        return True

    def is_answered(self, value: Any) -> bool:
        """Return True if ``value`` is a conforming, non-empty answer."""
        return False

    def to_dict(self, value: Any = None) -> dict[str, Any]:
        """Returns the question as a dictionary for template rendering."""
        return {
            "question_id": self.question.id,
            "question_text": self.question.text,
            "question_type": self.question.type,
            "required": self.question.required,
            "input_name": self.input_name,
            "template": self.template,
            "value": value,
        }


class TextQuestionHandler(QuestionHandler):
    """Free-form text. Any string is accepted; blank means unanswered."""

    template = "questions/text.html"

    def parse(self, raw: Optional[str]) -> Optional[ResponseValue]:
        return raw if isinstance(raw, str) else None

    def is_answered(self, value: Any) -> bool:
        return isinstance(value, str) and bool(value.strip())


class RatingQuestionHandler(QuestionHandler):
    """Integer within the question's scale, bounds included."""

    template = "questions/rating.html"
    question: RatingQuestion

    def _in_scale(self, value: Any) -> bool:
        scale = self.question.scale
        return (
            isinstance(value, int)
            and not isinstance(value, bool)
            and scale.min <= value <= scale.max
        )

    def parse(self, raw: Optional[str]) -> Optional[ResponseValue]:
        if raw is None:
            return None
        try:
            value = int(raw.strip())
        except ValueError:
            logger.debug(f"question:{self.question.id} - non-integer rating '{raw}'")
            return None
        return value if self._in_scale(value) else None

    def is_answered(self, value: Any) -> bool:
        return self._in_scale(value)

    def to_dict(self, value: Any = None) -> dict[str, Any]:
        scale = self.question.scale
        context = super().to_dict(value)
        context.update(
            {
                "choices": list(range(scale.min, scale.max + 1)),
                "min_label": scale.min_label,
                "max_label": scale.max_label,
            }
        )
        return context


class MultipleChoiceQuestionHandler(QuestionHandler):
    """One of the listed options, matched exactly."""

    template = "questions/multiple_choice.html"
    question: MultipleChoiceQuestion

    def parse(self, raw: Optional[str]) -> Optional[ResponseValue]:
        return raw if raw in self.question.options else None

    def is_answered(self, value: Any) -> bool:
        return isinstance(value, str) and value in self.question.options

    def to_dict(self, value: Any = None) -> dict[str, Any]:
        context = super().to_dict(value)
        context["options"] = [
            {
                "id": f"{self.input_name}-{index}",
                "label": option,
                "value": option,
            }
            for index, option in enumerate(self.question.options)
        ]
        return context


class YesNoQuestionHandler(QuestionHandler):
    """Boolean. Both yes and no count as answered."""

    template = "questions/yes_no.html"

    def parse(self, raw: Optional[str]) -> Optional[ResponseValue]:
        if raw is None:
            return None
        normalised = raw.strip().lower()
        if normalised in YES_VALUES:
            return True
        if normalised in NO_VALUES:
            return False
        return None

    def is_answered(self, value: Any) -> bool:
        return isinstance(value, bool)


class UnsupportedQuestionHandler(QuestionHandler):
    """Placeholder for question types the form cannot render."""

    def to_dict(self, value: Any = None) -> dict[str, Any]:
        context = super().to_dict(value)
        context["declared_type"] = getattr(
            self.question, "declared_type", self.question.type
        )
        return context


QUESTION_HANDLERS: dict[str, type[QuestionHandler]] = {
    "text": TextQuestionHandler,
    "rating": RatingQuestionHandler,
    "multiple_choice": MultipleChoiceQuestionHandler,
    "yes_no": YesNoQuestionHandler,
}


def get_question_handler(question: CampaignQuestion) -> QuestionHandler:
    """Select the handler for a question's declared type.

    Unknown types get an ``UnsupportedQuestionHandler`` so that one bad question
    never stops the rest of the form from rendering.

    Args:
        question: The campaign question.

    Returns:
        QuestionHandler: The handler for the question.
    """
    handler_class = QUESTION_HANDLERS.get(question.type)
    if handler_class is None:
        logger.warning(
            f"question:{question.id} - unsupported question type "
            f"'{getattr(question, 'declared_type', question.type)}' skipped"
        )
        return UnsupportedQuestionHandler(question)
    return handler_class(question)


def is_supported(question: CampaignQuestion) -> bool:
    """Return True if the form can render and collect ``question``."""
    return question.type in QUESTION_HANDLERS
