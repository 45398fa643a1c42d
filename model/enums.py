# model/enums.py
from enum import StrEnum


class UserRole(StrEnum):
    user = "user"
    moderator = "moderator"
    admin = "admin"


class PostScope(StrEnum):
    global_ = "global"
    group = "group"
    page = "page"


class PostKind(StrEnum):
    original = "original"
    reshare = "reshare"


class Retention(StrEnum):
    normal = "normal"
    extended = "extended"
    permanent = "permanent"


class ReactionType(StrEnum):
    like = "like"
    love = "love"
    care = "care"
    haha = "haha"
    wow = "wow"
    sad = "sad"
    angry = "angry"


class GroupPrivacy(StrEnum):
    public = "public"
    private = "private"


class FriendRequestStatus(StrEnum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"


class NotificationType(StrEnum):
    reaction = "reaction"
    comment = "comment"
    share = "share"
    friend_request = "friend_request"
    system = "system"
    motivation = "motivation"
    admin = "admin"


class ReportTarget(StrEnum):
    post = "post"
    comment = "comment"
    user = "user"
    page = "page"
    group = "group"


class ReportStatus(StrEnum):
    open = "open"
    resolved = "resolved"
    dismissed = "dismissed"


class Verdict(StrEnum):
    true = "true"
    false = "false"
    misleading = "misleading"
    opinion = "opinion"
    unverified = "unverified"
    outdated = "outdated"
    satire = "satire"


class TrustSubject(StrEnum):
    user = "user"
    page = "page"


class TrustTier(StrEnum):
    provisional = "provisional"
    low = "low"
    normal = "normal"
    high = "high"


class QuoteTone(StrEnum):
    inspiration = "inspiration"
    humor = "humor"


REACTION_TYPES = tuple(r.value for r in ReactionType)
VERDICTS = tuple(v.value for v in Verdict)
