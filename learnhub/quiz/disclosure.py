"""
Disclosure policy.

Correct answers and per-question correctness are shown only once they can
no longer help a later attempt: the learner passed, or has no retries left.
While a failed learner can still retry, responses carry the score and the
verdict but no ``results`` and no ``correctAnswer``.
"""
from learnhub.quiz.lifecycle import AttemptSummary


def may_disclose(attempt_passed: bool, summary: AttemptSummary) -> bool:
    return attempt_passed or not summary.can_retry


def shape_attempt(attempt_dict: dict, summary: AttemptSummary) -> dict:
    """
    Apply the policy to a serialized attempt.

    The attempt's ``results`` key is kept only when disclosure is permitted.
    """
    shaped = {key: value for key, value in attempt_dict.items() if key != 'results'}
    if may_disclose(bool(attempt_dict.get('passed')), summary):
        shaped['results'] = attempt_dict.get('results') or []
    return shaped


def shape_submit_response(attempt_dict: dict, summary: AttemptSummary) -> dict:
    """Body of a successful ``attempt-submit`` call."""
    body = {
        'success': True,
        'score': attempt_dict['score'],
        'totalQuestions': attempt_dict['totalQuestions'],
        'percent': attempt_dict['percent'],
        'passed': attempt_dict['passed'],
        'marks': attempt_dict.get('marks'),
        'totalMarks': attempt_dict.get('totalMarks'),
        'attemptNumber': attempt_dict['attemptNumber'],
        'autoSubmitted': attempt_dict['autoSubmitted'],
        'isLate': attempt_dict.get('isLate', False),
        'submission': shape_attempt(attempt_dict, summary),
    }
    for key, value in summary.to_dict().items():
        body.setdefault(key, value)
    if may_disclose(attempt_dict['passed'], summary):
        body['results'] = attempt_dict.get('results') or []
    return body
