"""Per-user session actors.

Every user id maps to exactly one ``SessionActor``. The actor is the only code
that mutates that user's ``Profile`` and ``Memory``: requests are queued in its
mailbox and applied one at a time, in arrival order, by a single worker task.
That ordering is what makes "check quota, then debit" and the pending slot
atomic without any lock.

Actors never wait on each other. The only cross-user effect, crediting the
owner of a referral code, is sent with ``tell`` and lands whenever the
referrer's actor gets to it.
"""

import asyncio
import copy
import logging

from .config import Settings
from .db import JsonStore
from .models import (
    AWAITING_CHART, AWAITING_PROMPT, ChartImage, Memory, Outcome, Profile,
    SignalRequest, Status,
)
from .prompts import CHART_USER_PROMPT
from .quota import add_balance, apply_referral_credit, can_consume, consume_one_use, grant_uses
from .referrals import ReferralRegistry, make_referral_code, normalize_code

log = logging.getLogger(__name__)

PENDING_ACTIONS = {"chart": AWAITING_CHART, "prompt": AWAITING_PROMPT}


class SessionActor:
    """Serialized owner of one user's profile and memory."""

    def __init__(self, user_id: int, directory: "SessionDirectory") -> None:
        self.user_id = user_id
        self.directory = directory
        self.profile: Profile | None = None
        self.memory: Memory | None = None
        self._mailbox: asyncio.Queue = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._inflight = 0
        self._handlers = {
            "ensure": self._ensure,
            "get_profile": self._get_profile,
            "can_consume": self._can_consume,
            "consume": self._consume,
            "begin_pending": self._begin_pending,
            "fulfill_with_image": self._fulfill_with_image,
            "fulfill_with_text": self._fulfill_with_text,
            "remember_selection": self._remember_selection,
            "record_note": self._record_note,
            "credit_referral": self._credit_referral,
            "admin_add_balance": self._admin_add_balance,
            "admin_grant_uses": self._admin_grant_uses,
        }

    @property
    def settings(self) -> Settings:
        return self.directory.settings

    @property
    def store(self) -> JsonStore:
        return self.directory.store

    @property
    def registry(self) -> ReferralRegistry:
        return self.directory.registry

    @property
    def idle(self) -> bool:
        return self._inflight == 0

    # ---- mailbox ----

    async def ask(self, op: str, **kwargs):
        """Queue ``op`` and wait for its result."""
        reply = asyncio.get_running_loop().create_future()
        self._post(op, kwargs, reply)
        return await reply

    def tell(self, op: str, **kwargs) -> None:
        """Queue ``op`` without waiting. Failures are logged, not reported."""
        self._post(op, kwargs, None)

    async def join(self) -> None:
        await self._mailbox.join()

    def _post(self, op: str, kwargs: dict, reply: asyncio.Future | None) -> None:
        # an actor released while idle hands its messages to whoever owns the id now
        current = self.directory._register(self)
        if current is not self:
            current._post(op, kwargs, reply)
            return
        self._inflight += 1
        self._mailbox.put_nowait((op, kwargs, reply))
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(
                self._run(), name=f"session-{self.user_id}"
            )

    def _release(self) -> None:
        """Forget cached state and leave the directory; the next message reloads from disk."""
        self.profile = self.memory = None
        self._worker = None
        self.directory._evict(self)

    async def _run(self) -> None:
        while True:
            if self._mailbox.empty():
                self._release()
                return
            op, kwargs, reply = await self._mailbox.get()
            try:
                result = self._handle(op, kwargs)
            except Exception as e:
                # whatever was half-applied in memory is dropped; disk is the truth
                self.profile = self.memory = None
                if reply is None:
                    log.exception("session %s: %s failed", self.user_id, op)
                elif not reply.done():
                    reply.set_exception(e)
            else:
                if reply is not None and not reply.done():
                    reply.set_result(result)
            finally:
                self._inflight -= 1
                self._mailbox.task_done()

    def _handle(self, op: str, kwargs: dict):
        handler = self._handlers.get(op)
        if handler is None:
            log.error("session %s: unknown operation %r", self.user_id, op)
            return Outcome(Status.FAILED, error=f"unknown operation: {op}")
        return handler(**kwargs)

    # ---- state ----

    def _state(self) -> tuple[Profile, Memory]:
        if self.profile is None or self.memory is None:
            raw = self.store.load_state(self.user_id)
            if raw:
                self.profile = Profile.from_dict(raw["profile"])
                self.memory = Memory.from_dict(raw.get("memory") or {})
            else:
                self._create()
        return self.profile, self.memory

    def _create(self) -> None:
        s = self.settings
        self.profile = Profile(
            id=self.user_id,
            referral_code=make_referral_code(self.user_id),
            language=s.language,
            free_uses_remaining=s.free_uses,
        )
        self.memory = Memory()
        self.registry.put(self.profile.referral_code, self.user_id)
        self._save()
        log.info("new user %s, referral code %s", self.user_id, self.profile.referral_code)

    def _save(self) -> None:
        self.store.save_state(self.user_id, {
            "profile": self.profile.to_dict(),
            "memory": self.memory.to_dict(),
        })

    def _build_request(self, symbol: str, category: str, chat_id: int | None,
                       user_prompt: str | None = None,
                       chart_image: ChartImage | None = None) -> SignalRequest:
        m, s = self.memory, self.settings
        return SignalRequest(
            user_id=self.user_id,
            chat_id=chat_id if chat_id is not None else self.user_id,
            symbol=symbol,
            category=category,
            timeframe=m.last_timeframe or s.default_timeframe,
            style=m.last_style or s.default_style,
            risk=m.last_risk or s.default_risk,
            user_prompt=user_prompt,
            chart_image=chart_image,
            memory_summary=m.summary(),
        )

    # ---- operations ----

    def _ensure(self, username: str | None = None, first_name: str | None = None,
                referral_payload: str | None = None):
        p, m = self._state()
        changed = False
        if username and p.username != username:
            p.username = username
            changed = True
        if first_name and p.first_name != first_name:
            p.first_name = first_name
            changed = True

        inviter = None
        code = normalize_code(referral_payload)
        if code and code != p.referral_code and not p.referred_by:
            owner = self.registry.get(code)
            if owner is not None and owner != self.user_id:
                p.referred_by = code
                inviter = owner
                changed = True
            else:
                log.info("user %s: ignoring referral code %s", self.user_id, code)

        if changed:
            self._save()
        if inviter is not None:
            log.info("user %s referred by %s", self.user_id, inviter)
            self.directory.get(inviter).tell("credit_referral", referee_id=self.user_id)
        return copy.deepcopy(p), copy.deepcopy(m)

    def _get_profile(self) -> Profile:
        p, _ = self._state()
        return copy.deepcopy(p)

    def _can_consume(self) -> bool:
        p, _ = self._state()
        return can_consume(p)

    def _consume(self) -> bool:
        p, _ = self._state()
        if not consume_one_use(p):
            return False
        self._save()
        return True

    def _begin_pending(self, action: str, category: str, symbol: str) -> Outcome:
        """Point the pending slot at ``symbol``.

        Quota is only checked here; it is debited when the action is fulfilled.
        Whatever the slot held before is overwritten, there is never more than
        one expectation per user.
        """
        pending = PENDING_ACTIONS.get(action)
        if pending is None or not category or not symbol:
            return Outcome(Status.FAILED, error=f"invalid pending action: {action} {category}:{symbol}")
        p, m = self._state()
        if not can_consume(p):
            return Outcome(Status.BLOCKED, symbol=symbol)
        m.set_pending(pending, category, symbol)
        self._save()
        return Outcome(Status.OK, symbol=symbol)

    def _fulfill_with_image(self, image: ChartImage, chat_id: int | None = None) -> Outcome:
        p, m = self._state()
        if m.pending_action != AWAITING_CHART:
            return Outcome(Status.NEED_MENU)
        if not m.has_pending_target():
            m.clear_pending()
            self._save()
            return Outcome(Status.NEED_MENU)
        if not consume_one_use(p):
            return Outcome(Status.BLOCKED, symbol=m.pending_symbol)

        symbol, category = m.pending_symbol, m.pending_category
        m.clear_pending()
        m.last_symbol, m.last_category = symbol, category
        req = self._build_request(symbol, category, chat_id, user_prompt=CHART_USER_PROMPT, chart_image=image)
        self._save()
        return Outcome(Status.READY, request=req, memory_summary=req.memory_summary, symbol=symbol)

    def _fulfill_with_text(self, text: str, chat_id: int | None = None) -> Outcome:
        p, m = self._state()
        if m.pending_action == AWAITING_CHART:
            return Outcome(Status.AWAIT_CHART, symbol=m.pending_symbol)
        if m.pending_action != AWAITING_PROMPT:
            return Outcome(Status.IGNORED)
        if not m.has_pending_target():
            m.clear_pending()
            self._save()
            return Outcome(Status.IGNORED)

        text = (text or "").strip()
        if not text:
            return Outcome(Status.IGNORED, symbol=m.pending_symbol)
        if not consume_one_use(p):
            return Outcome(Status.BLOCKED, symbol=m.pending_symbol)

        symbol, category = m.pending_symbol, m.pending_category
        m.clear_pending()
        m.last_symbol, m.last_category = symbol, category
        m.add_note(text)
        req = self._build_request(symbol, category, chat_id, user_prompt=text)
        self._save()
        return Outcome(Status.READY, request=req, memory_summary=req.memory_summary, symbol=symbol)

    def _remember_selection(self, category: str | None = None, symbol: str | None = None) -> None:
        _, m = self._state()
        if category:
            m.last_category = category
        if symbol:
            m.last_symbol = symbol
        self._save()

    def _record_note(self, text: str) -> None:
        _, m = self._state()
        m.add_note(text)
        self._save()

    def _credit_referral(self, referee_id: int | None = None) -> bool:
        p, _ = self._state()
        if referee_id is not None:
            if referee_id in p.credited_referees:
                log.warning("user %s: referral from %s already credited", self.user_id, referee_id)
                return False
            p.credited_referees.append(referee_id)
        granted = apply_referral_credit(p, self.settings)
        self._save()
        log.info("user %s: referrals=%s bonus_granted=%s", self.user_id, p.referrals, granted)
        return granted

    def _admin_add_balance(self, amount: int) -> Profile:
        p, _ = self._state()
        add_balance(p, amount)
        self._save()
        return copy.deepcopy(p)

    def _admin_grant_uses(self, uses: int) -> Profile:
        p, _ = self._state()
        grant_uses(p, uses)
        self._save()
        return copy.deepcopy(p)


class SessionDirectory:
    """Resolves a user id to its one ``SessionActor``.

    Only actors with queued work are held; an actor whose mailbox drains
    removes itself, so the map stays as small as the set of busy users.
    """

    def __init__(self, store: JsonStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.registry = ReferralRegistry(store)
        self._actors: dict[int, SessionActor] = {}

    def __len__(self) -> int:
        return len(self._actors)

    def get(self, user_id: int) -> SessionActor:
        actor = self._actors.get(user_id)
        if actor is None:
            actor = self._actors[user_id] = SessionActor(user_id, self)
        return actor

    def _register(self, actor: SessionActor) -> SessionActor:
        return self._actors.setdefault(actor.user_id, actor)

    def _evict(self, actor: SessionActor) -> None:
        if self._actors.get(actor.user_id) is actor:
            del self._actors[actor.user_id]

    async def ask(self, user_id: int, op: str, **kwargs):
        return await self.get(user_id).ask(op, **kwargs)

    async def join(self) -> None:
        """Wait until no actor has queued work, including credits sent meanwhile."""
        while True:
            busy = [a for a in self._actors.values() if not a.idle]
            if not busy:
                return
            await asyncio.gather(*(a.join() for a in busy))

    async def close(self) -> None:
        workers = [a._worker for a in self._actors.values() if a._worker is not None]
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
