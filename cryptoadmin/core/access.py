from typing import Callable, Iterable, Optional

from cryptoadmin.models.session import User

AccessPolicy = Callable[[Optional[User]], bool]


def allow_list_policy(emails: Iterable[str]) -> AccessPolicy:
    """
    Build an authorization predicate from a static allow-list of emails.
    The list is frozen here; later changes to `emails` are not seen.
    Matching is exact, so entries must be written the way the identity
    provider reports them.
    """
    allowed = frozenset(emails)

    def is_authorized(user: Optional[User]) -> bool:
        if user is None:
            return False
        return (user.email or "") in allowed

    return is_authorized
