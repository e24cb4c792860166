# app/services/recommendation_service.py
"""
Decides whether an anonymous visitor may recommend a doctor profile.

A recommendation attempt walks a fixed chain:

    profile exists? -> limiter -> same fingerprint -> same IP in last 24h -> insert -> counter++

Every duplicate check fails open: an exception inside a check is logged and
counts as "no duplicate". Only a positive match stops the chain, and it
stops it with a normal ALREADY_RECOMMENDED outcome, not an error.

The uniqueness rules are advisory. Two concurrent requests from the same
visitor can both pass the checks and both insert; the table has no unique
index on (profile_id, fingerprint) or (profile_id, ip_address, day).
"""
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol, Sequence

from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client

from app.core.identity import Identity
from app.core.limiter import SlidingWindowLimiter
from app.services.profile_service import PROFILES_TABLE, ProfileNotFoundError

RECOMMENDATIONS_TABLE = "recommendations"
INCREMENT_RPC = "increment_recommendation_count"

IP_WINDOW = timedelta(hours=24)
UNIQUE_VIOLATION = "23505"

MESSAGE_RECOMMENDED = "Thank you for your recommendation!"
MESSAGE_ALREADY_RECOMMENDED = "You've already recommended this doctor recently"


class RecommendationOutcome(str, Enum):
    RECOMMENDED = "recommended"
    ALREADY_RECOMMENDED = "already_recommended"

    @property
    def message(self) -> str:
        if self is RecommendationOutcome.RECOMMENDED:
            return MESSAGE_RECOMMENDED
        return MESSAGE_ALREADY_RECOMMENDED


class RecommendationInsertError(Exception):
    pass


class Deduplicator(Protocol):
    name: str

    def has_duplicate(self, profile_id: str, identity: Identity) -> bool:
        ...


class LimiterDeduplicator:
    """One recommendation per IP per profile per 24h, via the shared limiter."""
    name = "rate_limiter"

    def __init__(self, limiter: SlidingWindowLimiter):
        self.limiter = limiter

    def has_duplicate(self, profile_id: str, identity: Identity) -> bool:
        result = self.limiter.check(self._key(profile_id, identity))
        return not result.allowed

    def release(self, profile_id: str, identity: Identity) -> None:
        self.limiter.reset(self._key(profile_id, identity))

    @staticmethod
    def _key(profile_id: str, identity: Identity) -> str:
        return f"{identity.ip}:{profile_id}"


class FingerprintDeduplicator:
    name = "fingerprint"

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def has_duplicate(self, profile_id: str, identity: Identity) -> bool:
        response = self.supabase.table(RECOMMENDATIONS_TABLE).select("id").eq(
            "profile_id", profile_id
        ).eq(
            "fingerprint", identity.fingerprint
        ).limit(1).execute()
        return bool(response.data)


class IpWindowDeduplicator:
    """
    Same IP for the same profile within the window.
    Backstop for when the limiter is down or not configured.
    """
    name = "ip_window"

    def __init__(self, supabase: Client, window: timedelta = IP_WINDOW,
                 now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.supabase = supabase
        self.window = window
        self.now = now

    def has_duplicate(self, profile_id: str, identity: Identity) -> bool:
        since = self.now() - self.window
        response = self.supabase.table(RECOMMENDATIONS_TABLE).select("id").eq(
            "profile_id", profile_id
        ).eq(
            "ip_address", identity.ip
        ).gte(
            "created_at", since.isoformat()
        ).limit(1).execute()
        return bool(response.data)


def default_deduplicators(supabase: Client, limiter: SlidingWindowLimiter) -> List[Deduplicator]:
    return [
        LimiterDeduplicator(limiter),
        FingerprintDeduplicator(supabase),
        IpWindowDeduplicator(supabase),
    ]


def increment_recommendation_count(supabase: Client, profile_id: str) -> None:
    """Bumps the denormalised counter. Never raises: the record already exists."""
    try:
        supabase.rpc(INCREMENT_RPC, {"profile_uuid": profile_id}).execute()
    except Exception as e:
        logger.error(f"Recommendation counter increment failed for profile {profile_id}: {e}")


def _run_inline(func: Callable[..., Any], *args: Any) -> None:
    func(*args)


class RecommendationGate:
    """
    `dispatch` schedules the counter increment. Routers pass
    BackgroundTasks.add_task so it runs after the response is sent;
    the default runs it inline.
    """

    def __init__(
        self,
        supabase: Client,
        deduplicators: Sequence[Deduplicator],
        dispatch: Optional[Callable[..., Any]] = None,
    ):
        self.supabase = supabase
        self.deduplicators = list(deduplicators)
        self.dispatch = dispatch or _run_inline

    def _profile_exists(self, profile_id: str) -> bool:
        response = self.supabase.table(PROFILES_TABLE).select("id").eq(
            "id", profile_id
        ).limit(1).execute()
        return bool(response.data)

    def _is_duplicate(self, profile_id: str, identity: Identity) -> bool:
        for deduplicator in self.deduplicators:
            try:
                if deduplicator.has_duplicate(profile_id, identity):
                    logger.info(f"Recommendation for {profile_id} matched by '{deduplicator.name}' check")
                    return True
            except Exception as e:
                logger.warning(f"Duplicate check '{deduplicator.name}' failed, treating as no match: {e}")
        return False

    def _release(self, profile_id: str, identity: Identity) -> None:
        """Undoes the quota the checks consumed, so a failed insert can be retried."""
        for deduplicator in self.deduplicators:
            release = getattr(deduplicator, "release", None)
            if release is None:
                continue
            try:
                release(profile_id, identity)
            except Exception as e:
                logger.warning(f"Could not release '{deduplicator.name}' after failed insert: {e}")

    def evaluate(self, profile_id: str, identity: Identity) -> RecommendationOutcome:
        # 1. Profile must exist
        try:
            exists = self._profile_exists(profile_id)
        except Exception as e:
            logger.error(f"Profile lookup failed ({profile_id}): {e}")
            raise ProfileNotFoundError(profile_id) from e

        if not exists:
            raise ProfileNotFoundError(profile_id)

        # 2. Duplicate checks, in order, first match wins
        if self._is_duplicate(profile_id, identity):
            return RecommendationOutcome.ALREADY_RECOMMENDED

        # 3. Insert the record
        try:
            response = self.supabase.table(RECOMMENDATIONS_TABLE).insert({
                "profile_id": profile_id,
                "fingerprint": identity.fingerprint,
                "ip_address": identity.ip,
            }).execute()
        except APIError as e:
            # Only reachable if a unique index has been added to the table
            if e.code == UNIQUE_VIOLATION:
                logger.info(f"Recommendation for {profile_id} rejected by unique index")
                return RecommendationOutcome.ALREADY_RECOMMENDED
            logger.error(f"Recommendation insert failed ({profile_id}): {e}")
            self._release(profile_id, identity)
            raise RecommendationInsertError(str(e)) from e
        except Exception as e:
            logger.error(f"Recommendation insert failed ({profile_id}): {e}")
            self._release(profile_id, identity)
            raise RecommendationInsertError(str(e)) from e

        if not response.data:
            self._release(profile_id, identity)
            raise RecommendationInsertError("Insert returned no data")

        # 4. Counter, best-effort
        self.dispatch(increment_recommendation_count, self.supabase, profile_id)

        return RecommendationOutcome.RECOMMENDED
