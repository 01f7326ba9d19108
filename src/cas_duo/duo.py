"""Duo side of the handshake: bootstrap, push challenge and status polling."""

import logging
import threading
import time
from collections.abc import Collection
from typing import Callable

from .config import DEFAULT_MAX_RETRIES, DEFAULT_POLL_INTERVAL, CASDuoConfig
from .exceptions import (
    AuthenticationTimeout,
    DuoDenied,
    ExtractionError,
    LoginCancelled,
    MalformedResponse,
    ProtocolRejection,
)
from .forms import parse_form, require_fields
from .listeners import DuoStatusListener
from .models import ChallengeFormContext, DuoFormContext, PollResult, PollState, Transaction, WidgetBootstrapParams
from .selectors import (
    DUO_DAYS_OUT_OF_DATE,
    DUO_DAYS_TO_BLOCK,
    DUO_DAYS_TO_BLOCK_VALUE,
    DUO_DEVICE,
    DUO_FACTOR,
    DUO_OUT_OF_DATE,
    DUO_PARENT,
    DUO_PREFERRED_DEVICE,
    DUO_PREFERRED_FACTOR,
    DUO_PROTOCOL_VERSION,
    DUO_SID,
    DUO_TX,
    DUO_TXID,
    DUO_VERSION,
    SELECTORS,
    duo_url,
)
from .session import Session

logger = logging.getLogger(__name__)


def bootstrap(
    session: Session,
    config: CASDuoConfig,
    widget: WidgetBootstrapParams,
    duo_form: DuoFormContext,
) -> ChallengeFormContext:
    """Open a Duo frame session for the signed request.

    Factor and device default to the user's preferred ones unless the
    configuration overrides them.

    Raises:
        TransportError: If the Duo request fails.
        ExtractionError: If sid, factor or device cannot be determined.
    """
    logger.info("Starting Duo session on %s", widget.host)
    html = session.fetch_html(
        duo_url(widget.host, "auth"),
        params={
            DUO_TX: widget.duo_signature,
            DUO_PARENT: config.cas_url,
            DUO_VERSION: DUO_PROTOCOL_VERSION,
        },
    )
    form = parse_form(html, SELECTORS["duo_login_form"])
    require_fields(form, (DUO_SID,), "Duo login frame")

    factor = config.factor or form.get(DUO_PREFERRED_FACTOR, "")
    device = config.device or form.get(DUO_PREFERRED_DEVICE, "")
    if not factor or not device:
        raise ExtractionError("Duo login frame: no preferred factor/device and none configured")

    return ChallengeFormContext(
        sid=form[DUO_SID],
        preferred_factor=factor,
        preferred_device=device,
        lt=duo_form.lt,
        execution=duo_form.execution,
        event_id=duo_form.event_id,
    )


def issue_challenge(session: Session, host: str, context: ChallengeFormContext) -> Transaction:
    """Send the push request to the preferred device.

    Raises:
        ProtocolRejection: If Duo does not answer with stat "OK".
        MalformedResponse: If the answer is not JSON or has no txid.
    """
    logger.info("Sending %s to %s", context.preferred_factor, context.preferred_device)
    data = session.fetch_json(
        duo_url(host, "prompt"),
        params={
            DUO_SID: context.sid,
            DUO_FACTOR: context.preferred_factor,
            DUO_DEVICE: context.preferred_device,
            DUO_OUT_OF_DATE: "",
            DUO_DAYS_OUT_OF_DATE: "",
            DUO_DAYS_TO_BLOCK: DUO_DAYS_TO_BLOCK_VALUE,
        },
    )
    transaction = Transaction.from_response(data)
    if not transaction.ok:
        logger.warning("There was a problem issuing remote 2 factor verification: stat=%s", transaction.status or "?")
        raise ProtocolRejection(f"Duo rejected the verification request (stat={transaction.status or 'missing'})")
    if not transaction.txid:
        raise MalformedResponse("Duo accepted the verification request but returned no txid")
    return transaction


class DuoPoller:
    """Poll the Duo status endpoint until the push is approved.

    States move from PENDING (and PUSHED while the device is prompting) to
    one of ALLOWED, DENIED or EXHAUSTED. At most ``max_retries`` status
    requests are made, ``interval`` seconds apart.

    Statuses other than ``allow`` and ``pushed`` keep the loop going unless
    they are listed in ``stop_on``, which ends it with DENIED.

    An optional ``cancel`` event aborts the wait early, and an optional
    ``timeout`` puts an overall deadline on the loop. Neither changes how
    often the status endpoint is called or which listener hooks fire.
    """

    def __init__(
        self,
        session: Session,
        host: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        interval: float = DEFAULT_POLL_INTERVAL,
        listener: DuoStatusListener | None = None,
        stop_on: Collection[str] = (),
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        sleep: Callable[[float], object] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.host = host
        self.max_retries = max_retries
        self.interval = interval
        self.listener = listener or DuoStatusListener()
        self.stop_on = frozenset(s.lower() for s in stop_on)
        self.timeout = timeout
        self.cancel = cancel
        self._sleep = sleep or (cancel.wait if cancel is not None else time.sleep)
        self._clock = clock
        self.state = PollState.PENDING
        self.attempts = 0

    @classmethod
    def from_config(
        cls,
        session: Session,
        host: str,
        config: CASDuoConfig,
        cancel: threading.Event | None = None,
    ) -> "DuoPoller":
        return cls(
            session,
            host,
            max_retries=config.max_retries,
            interval=config.poll_interval,
            listener=config.listener,
            stop_on=config.stop_on,
            timeout=config.poll_timeout,
            cancel=cancel,
        )

    def _check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise LoginCancelled(f"Duo login cancelled after {self.attempts} status checks")

    def _pause(self, deadline: float | None) -> float:
        """Seconds to wait before the next poll, never past the deadline."""
        if deadline is None:
            return self.interval
        return min(self.interval, max(0.0, deadline - self._clock()))

    def check_status(self, context: ChallengeFormContext, transaction: Transaction) -> PollResult:
        """Make one status request."""
        data = self.session.fetch_json(
            duo_url(self.host, "status"),
            params={
                DUO_SID: context.sid,
                DUO_TXID: transaction.txid,
            },
        )
        return PollResult.from_response(data)

    def poll(self, context: ChallengeFormContext, transaction: Transaction) -> PollResult:
        """Wait for the push to be approved.

        Returns:
            The ``allow`` result carrying the Duo-signed cookie.

        Raises:
            DuoDenied: If a status in ``stop_on`` is received.
            AuthenticationTimeout: If retries or the deadline run out.
            LoginCancelled: If the cancel event is set.
            TransportError, MalformedResponse: On a failed status request.
        """
        self.state = PollState.PENDING
        self.attempts = 0
        deadline = self._clock() + self.timeout if self.timeout is not None else None

        for attempt in range(1, self.max_retries + 1):
            self._check_cancelled()
            if deadline is not None and self._clock() >= deadline:
                self.state = PollState.EXHAUSTED
                raise AuthenticationTimeout(f"Duo approval not received within {self.timeout:g}s")

            self.attempts = attempt
            result = self.check_status(context, transaction)

            if result.allowed:
                self.state = PollState.ALLOWED
                self.listener.on_allowed(result)
                return result

            if result.pushed:
                self.state = PollState.PUSHED
                self.listener.on_pushed(result)
            elif result.status_code in self.stop_on:
                self.state = PollState.DENIED
                logger.warning("Duo returned terminal status %r", result.status_code)
                raise DuoDenied(f"Duo returned status {result.status_code!r}", status_code=result.status_code)
            else:
                logger.debug("Duo status %r, still waiting", result.status_code)

            if attempt < self.max_retries:
                self._sleep(self._pause(deadline))

        self._check_cancelled()
        self.state = PollState.EXHAUSTED
        logger.warning(
            "Did not receive authentication confirmation from duo after %d tries, giving up", self.max_retries
        )
        raise AuthenticationTimeout(f"Duo approval not received after {self.max_retries} status checks")


def duo_login(
    session: Session,
    config: CASDuoConfig,
    widget: WidgetBootstrapParams,
    duo_form: DuoFormContext,
    cancel: threading.Event | None = None,
) -> tuple[ChallengeFormContext, PollResult]:
    """Bootstrap Duo, push a challenge and wait for approval."""
    context = bootstrap(session, config, widget, duo_form)
    transaction = issue_challenge(session, widget.host, context)
    poller = DuoPoller.from_config(session, widget.host, config, cancel=cancel)
    return context, poller.poll(context, transaction)
