"""Validation of inbound platform callbacks in Flask applications.

Delivery receipts and inbound messages arrive as GET or POST requests whose
parameters may be signed with the account's signature secret and may carry
a configured username and password.

Example::

    validator = CallbackValidator(
        verifier=SignatureVerifier(secret, SigningConfig(CanonicalizationMode.DELIMITED)),
    )

    @app.route("/callbacks/inbound", methods=["GET", "POST"])
    @require_signed_callback(validator)
    def inbound():
        message = g.callback_params
        ...
"""

from __future__ import annotations

import functools
import hmac
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from flask import abort, g, request

from commsauth.verification import SignatureVerifier

logger = logging.getLogger(__name__)

PARAM_USERNAME = "username"
PARAM_PASSWORD = "password"


def extract_parameters(req: Any) -> Dict[str, str]:
    """Collect callback parameters from the query string and form body.

    Only the first value of a repeated parameter is kept, query string first.
    """
    params: Dict[str, str] = {}
    for source in (req.args, req.form):
        for name in source:
            if name not in params:
                params[name] = source.getlist(name)[0]
    return params


def _matches(expected: str, actual: Optional[str]) -> bool:
    if actual is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))


class CallbackValidator:
    """Checks callback credentials and signatures.

    Each check is enabled only when configured; a validator with no checks
    accepts every request.
    """

    def __init__(
        self,
        verifier: Optional[SignatureVerifier] = None,
        expected_username: Optional[str] = None,
        expected_password: Optional[str] = None,
    ):
        """Initialize the validator.

        Args:
            verifier: Signature verifier, or None to skip signature checks
            expected_username: Required ``username`` parameter value
            expected_password: Required ``password`` parameter value
        """
        self.verifier = verifier
        self.expected_username = expected_username
        self.expected_password = expected_password

    def failure_reason(
        self, params: Mapping[str, Any], now_millis: Optional[int] = None
    ) -> Optional[str]:
        """Return why the callback is rejected, or None if it passes."""
        if self.expected_username is not None and not _matches(
            self.expected_username, params.get(PARAM_USERNAME)
        ):
            return "Bad Credentials"
        if self.expected_password is not None and not _matches(
            self.expected_password, params.get(PARAM_PASSWORD)
        ):
            return "Bad Credentials"

        if self.verifier is not None:
            outcome = self.verifier.verify(params, now_millis=now_millis)
            if not outcome.is_valid:
                return f"Bad Signature ({outcome.value})"
        return None

    def validate(self, params: Mapping[str, Any], now_millis: Optional[int] = None) -> bool:
        return self.failure_reason(params, now_millis=now_millis) is None


def require_signed_callback(validator: CallbackValidator) -> Callable:
    """Decorate a Flask view so that it only runs for valid callbacks.

    Rejected requests are aborted with 401. Accepted requests find their
    parameters in ``flask.g.callback_params``.
    """

    def decorator(view: Callable) -> Callable:
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            params = extract_parameters(request)
            reason = validator.failure_reason(params)
            if reason is not None:
                logger.warning(
                    "Rejected callback to %s from %s: %s", request.path, request.remote_addr, reason
                )
                abort(401, description=reason)
            g.callback_params = params
            return view(*args, **kwargs)

        return wrapper

    return decorator
