from __future__ import annotations

from enum import Enum


class SubmissionStatus(str, Enum):
    """
    投稿生命周期状态。

    中文注释:
    - pending -> under_review -> shortlisted / accepted / declined
    - pending / under_review -> withdrawn（仅 writer 可发起）
    - 除 pending / under_review 外均为终态：writer / editor 入口都不能再流转。
    """

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    SHORTLISTED = "shortlisted"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"

    @classmethod
    def allowed_next(cls, current: str) -> set[str]:
        """
        editor 视角可达的下一状态（withdrawn 不在其中，它只属于 writer）。
        """
        c = (current or "").strip().lower()
        if c == cls.PENDING.value:
            return {cls.UNDER_REVIEW.value}
        if c == cls.UNDER_REVIEW.value:
            return {cls.SHORTLISTED.value, cls.ACCEPTED.value, cls.DECLINED.value}
        return set()


WITHDRAWABLE_STATUSES = frozenset({SubmissionStatus.PENDING.value, SubmissionStatus.UNDER_REVIEW.value})

TERMINAL_STATUSES = frozenset(
    {
        SubmissionStatus.SHORTLISTED.value,
        SubmissionStatus.ACCEPTED.value,
        SubmissionStatus.DECLINED.value,
        SubmissionStatus.WITHDRAWN.value,
    }
)

# Dashboard 中“进行中”的投稿
ACTIVE_STATUSES = frozenset(
    {
        SubmissionStatus.PENDING.value,
        SubmissionStatus.UNDER_REVIEW.value,
        SubmissionStatus.SHORTLISTED.value,
    }
)

DEFAULT_WITHDRAWAL_REASON = "Writer requested withdrawal"


def normalize_status(value: str | None) -> str | None:
    if value is None:
        return None
    v = str(value).strip().lower().replace(" ", "_").replace("-", "_")
    if not v:
        return None
    try:
        return SubmissionStatus(v).value
    except ValueError:
        return None


def can_withdraw(status: str | None) -> bool:
    return normalize_status(status) in WITHDRAWABLE_STATUSES


def is_terminal(status: str | None) -> bool:
    return normalize_status(status) in TERMINAL_STATUSES


class FileRole(str, Enum):
    MANUSCRIPT = "manuscript"
    COVER_LETTER = "cover_letter"
    BIO = "bio"


def normalize_file_role(value: str | None) -> str | None:
    v = str(value or "").strip().lower().replace("-", "_")
    if not v:
        return FileRole.MANUSCRIPT.value
    try:
        return FileRole(v).value
    except ValueError:
        return None


class DecisionType(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    REVISE_RESUBMIT = "revise_resubmit"
    SHORTLIST = "shortlist"

    def resulting_status(self) -> str:
        # revise_resubmit 结束本次投稿，作者需重新投稿
        return {
            DecisionType.ACCEPT: SubmissionStatus.ACCEPTED.value,
            DecisionType.DECLINE: SubmissionStatus.DECLINED.value,
            DecisionType.REVISE_RESUBMIT: SubmissionStatus.DECLINED.value,
            DecisionType.SHORTLIST: SubmissionStatus.SHORTLISTED.value,
        }[self]


class Recommendation(str, Enum):
    PASS = "pass"
    MAYBE = "maybe"
    YES = "yes"


class ActivityType(str, Enum):
    SUBMISSION_CREATED = "submission_created"
    STATUS_CHANGED = "status_changed"
    REVIEW_COMPLETED = "review_completed"
    JOURNAL_BOOKMARKED = "journal_bookmarked"
