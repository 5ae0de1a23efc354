"""
Candidate validation
Per question type schema checks and normalization
"""
import copy
import math
import re
from typing import Any, Callable, Dict, List, Optional

from core.contracts import QuestionType
from utils.exceptions import ValidationFailure


MC_OPTION_COUNT = 4
MIN_SEQUENCE_ITEMS = 3
OPTION_LETTERS = "ABCD"

_BLANK_RE = re.compile(r"_{3,}")
_OPTION_LABEL_RE = re.compile(r"^\s*\(?([A-Da-d])\s*[\.\)\:、．]\s*")
_LETTER_RE = re.compile(r"^\s*\(?([A-Da-d])\)?\s*[\.\)]?\s*$")
_MARK_STRING_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:M\b|marks?\b|分)", re.IGNORECASE)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _number(value: Any) -> Optional[float]:
    """Finite float or None; NaN and infinities count as missing"""
    if isinstance(value, bool):
        return None
    try:
        number = float(value) if isinstance(value, (int, float)) else float(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [_text(item) for item in value]


def strip_option_label(option: Any) -> str:
    """'B. 5 N' -> '5 N'"""
    return _OPTION_LABEL_RE.sub("", _text(option), count=1).strip()


def normalize_difficulty(value: Any, default: int) -> int:
    """Clamp to 1..5; non-numeric values fall back to the bucket difficulty"""
    number = _number(value)
    if number is None:
        number = default
    return max(1, min(5, int(round(number))))


def _validate_mc(payload: Dict[str, Any], issues: List[str]) -> None:
    options = _string_list(payload.get("options"))
    if options is None:
        issues.append("options must be a list")
        return
    if len(options) != MC_OPTION_COUNT:
        issues.append(f"expected {MC_OPTION_COUNT} options, got {len(options)}")

    bare = [strip_option_label(option) for option in options]
    if any(not option for option in bare):
        issues.append("options must not be empty")
    elif len({option.casefold() for option in bare}) != len(bare):
        issues.append("options must be distinct")

    answer = payload.get("correctAnswer")
    correct_index: Optional[int] = None
    if isinstance(answer, str) and _LETTER_RE.match(answer):
        correct_index = OPTION_LETTERS.index(_LETTER_RE.match(answer).group(1).upper())
    elif _index(answer) is not None:
        correct_index = _index(answer)
    elif _text(answer):
        target = strip_option_label(answer).casefold()
        matches = [idx for idx, option in enumerate(bare) if option.casefold() == target]
        if matches:
            correct_index = matches[0]

    if correct_index is None or not 0 <= correct_index < len(options):
        issues.append(f"correctAnswer does not reference an option: {answer!r}")
    elif correct_index < len(OPTION_LETTERS):
        payload["correctAnswer"] = OPTION_LETTERS[correct_index]
        payload["correctIndex"] = correct_index

    if not _text(payload.get("explanation")):
        issues.append("explanation is required")


def _validate_fill_in(payload: Dict[str, Any], issues: List[str]) -> None:
    blanks = _string_list(payload.get("blanks"))
    if not blanks:
        issues.append("blanks must be a non-empty list")
        return
    if any(not blank for blank in blanks):
        issues.append("blanks must not be empty")
    markers = len(_BLANK_RE.findall(_text(payload.get("question"))))
    if markers != len(blanks):
        issues.append(f"question has {markers} blank markers but {len(blanks)} answers")


def _validate_matching(payload: Dict[str, Any], issues: List[str]) -> None:
    left = _string_list(payload.get("leftItems"))
    right = _string_list(payload.get("rightItems"))
    if left is None or right is None:
        issues.append("leftItems and rightItems must be lists")
        return
    if len(left) != len(right):
        issues.append(f"leftItems ({len(left)}) and rightItems ({len(right)}) differ in length")
        return
    size = len(left)
    if size < MIN_SEQUENCE_ITEMS:
        issues.append(f"matching needs at least {MIN_SEQUENCE_ITEMS} pairs, got {size}")

    pairs = payload.get("correctPairs")
    if not isinstance(pairs, list):
        issues.append("correctPairs must be a list")
        return
    parsed = []
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            issues.append(f"malformed pair: {pair!r}")
            return
        a, b = _index(pair[0]), _index(pair[1])
        if a is None or b is None or not (0 <= a < size and 0 <= b < size):
            issues.append(f"pair out of range: {pair!r}")
            return
        parsed.append([a, b])

    lefts = sorted(a for a, _ in parsed)
    rights = sorted(b for _, b in parsed)
    if lefts != list(range(size)) or rights != list(range(size)):
        issues.append("correctPairs must pair every left item with exactly one right item")
        return
    payload["correctPairs"] = parsed


def _validate_ordering(payload: Dict[str, Any], issues: List[str]) -> None:
    items = _string_list(payload.get("items"))
    if items is None:
        issues.append("items must be a list")
        return
    if len(items) < MIN_SEQUENCE_ITEMS:
        issues.append(f"ordering needs at least {MIN_SEQUENCE_ITEMS} items, got {len(items)}")

    order = payload.get("correctOrder")
    if not isinstance(order, list):
        issues.append("correctOrder must be a list")
        return
    indices = [_index(value) for value in order]
    if any(value is None for value in indices) or sorted(indices) != list(range(len(items))):
        issues.append(f"correctOrder is not a permutation of 0..{len(items) - 1}: {order!r}")
        return
    payload["correctOrder"] = indices


def _scheme_marks(scheme: List[Any], issues: List[str]) -> List[float]:
    """Marks from {"marks": n} entries or "2M: ..." strings"""
    marks = []
    for entry in scheme:
        if isinstance(entry, dict):
            value = _number(entry.get("marks"))
        else:
            match = _MARK_STRING_RE.match(_text(entry))
            value = float(match.group(1)) if match else None
        if value is None:
            issues.append(f"marking entry without a finite mark: {entry!r}")
            continue
        if value < 0:
            issues.append(f"negative marks: {entry!r}")
            continue
        marks.append(value)
    return marks


def _check_total(payload: Dict[str, Any], marks: List[float], issues: List[str]) -> None:
    total = payload.get("totalMarks")
    if total is None:
        issues.append("totalMarks is required")
        return
    total_value = _number(total)
    if total_value is None or total_value < 0:
        issues.append(f"totalMarks must be a non-negative number, got {total!r}")
    elif abs(sum(marks) - total_value) > 1e-6:
        issues.append(f"marks sum to {sum(marks):g} but totalMarks is {total_value:g}")


def _validate_short(payload: Dict[str, Any], issues: List[str]) -> None:
    if not _text(payload.get("modelAnswer")):
        issues.append("modelAnswer is required")
    scheme = payload.get("markingScheme")
    if not isinstance(scheme, list) or not scheme:
        issues.append("markingScheme must be a non-empty list")
        return
    before = len(issues)
    marks = _scheme_marks(scheme, issues)
    if len(issues) == before:
        _check_total(payload, marks, issues)


def _validate_long(payload: Dict[str, Any], issues: List[str]) -> None:
    parts = payload.get("parts")
    if parts is None:
        # Single-part long question
        _validate_short(payload, issues)
        return
    if not isinstance(parts, list) or not parts:
        issues.append("parts must be a non-empty list")
        return

    has_top_answer = bool(_text(payload.get("modelAnswer")))
    marks = []
    before = len(issues)
    for idx, part in enumerate(parts):
        if not isinstance(part, dict):
            issues.append(f"part {idx} is not an object")
            continue
        label = _text(part.get("part")) or str(idx)
        if not _text(part.get("question")):
            issues.append(f"part {label}: question is required")
        if not has_top_answer and not _text(part.get("modelAnswer")):
            issues.append(f"part {label}: modelAnswer is required")
        value = _number(part.get("marks"))
        if value is None or value < 0:
            issues.append(f"part {label}: marks must be a finite non-negative number")
        else:
            marks.append(value)
    if len(issues) == before:
        _check_total(payload, marks, issues)


_TYPE_RULES: Dict[QuestionType, Callable[[Dict[str, Any], List[str]], None]] = {
    QuestionType.MC: _validate_mc,
    QuestionType.SHORT: _validate_short,
    QuestionType.LONG: _validate_long,
    QuestionType.FILL_IN: _validate_fill_in,
    QuestionType.MATCHING: _validate_matching,
    QuestionType.ORDERING: _validate_ordering,
}


def validate_candidate(
    question_type: QuestionType,
    payload: Dict[str, Any],
    default_difficulty: int,
) -> Dict[str, Any]:
    """
    Check a candidate against its question-type schema

    Args:
        question_type: bucket question type
        payload: decoded model output (not modified)
        default_difficulty: bucket difficulty, used when the payload has none

    Returns:
        Normalized copy of the payload

    Raises:
        ValidationFailure: every violated rule, collected
    """
    question_type = QuestionType(question_type)
    if not isinstance(payload, dict):
        raise ValidationFailure(["payload must be an object"], question_type.value)

    normalized = copy.deepcopy(payload)
    issues: List[str] = []

    question = _text(normalized.get("question"))
    if not question:
        issues.append("question text is required")
    else:
        normalized["question"] = question

    normalized["difficulty"] = normalize_difficulty(normalized.get("difficulty"), default_difficulty)

    _TYPE_RULES[question_type](normalized, issues)

    if issues:
        raise ValidationFailure(issues, question_type.value)
    return normalized
