"""Connection descriptor builders.

Two independent factories:

* :func:`build_key_connection` authenticates with a private key, optionally
  preceded by a password when the server demands both.
* :func:`build_password_connection` authenticates with a password followed by
  keyboard-interactive.

Proxy routing is resolved the same way for both and never changes which
authentication methods are produced.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..interaction import PasswordChallengeHandler
from ..utils.secret import SecretString
from .credentials import Credential, Target, UserPasswordAndKeyCredential
from .descriptor import (
    AuthMethod,
    ConnectionDescriptor,
    InteractiveHandler,
    KeyboardInteractiveAuth,
    PasswordAuth,
    PrivateKeyAuth,
)
from .errors import InvalidCredentialError
from .keys import KeySource, load_private_key
from .proxy import ProxySettings, resolve_proxy

logger = logging.getLogger(__name__)


def _require_credential(credential: Optional[Credential]) -> Credential:
    if credential is None:
        raise InvalidCredentialError("A username/password credential is required")
    credential.require_username()
    return credential


def build_key_connection(
    target: Target,
    key_source: KeySource,
    credential: Optional[Credential],
    *,
    passphrase: Optional[SecretString] = None,
    proxy: Optional[ProxySettings] = None,
    combined_auth: bool = False,
) -> ConnectionDescriptor:
    """Build a descriptor that authenticates with a private key.

    With ``combined_auth`` the password is presented first and the key second,
    for servers requiring both factors. Without it only the key is used and
    the credential's secret is ignored.
    """
    credential = _require_credential(credential)
    if combined_auth:
        credential.require_secret()

    proxy_config = resolve_proxy(proxy)
    key = load_private_key(key_source, passphrase)

    methods: List[AuthMethod] = []
    if combined_auth:
        methods.append(PasswordAuth(credential.username, credential.require_secret().copy()))
    methods.append(PrivateKeyAuth(credential.username, key))

    descriptor = ConnectionDescriptor(
        target=target,
        username=credential.username,
        auth_methods=tuple(methods),
        proxy=proxy_config,
    )
    logger.debug("Built key connection descriptor: %s", descriptor.to_dict())
    return descriptor


def build_from_bundle(
    target: Target,
    bundle: UserPasswordAndKeyCredential,
    *,
    proxy: Optional[ProxySettings] = None,
    combined_auth: bool = False,
) -> ConnectionDescriptor:
    """Build a key descriptor from a credential bundled with its key."""
    return build_key_connection(
        target,
        bundle.key_source(),
        bundle.credential,
        passphrase=bundle.key_passphrase,
        proxy=proxy,
        combined_auth=combined_auth,
    )


def build_password_connection(
    target: Target,
    credential: Optional[Credential],
    interactive_handler: Optional[InteractiveHandler] = None,
    *,
    proxy: Optional[ProxySettings] = None,
) -> ConnectionDescriptor:
    """Build a descriptor that tries password, then keyboard-interactive.

    ``interactive_handler`` answers keyboard-interactive prompts. When it is
    omitted, prompts asking for a password are answered with the credential's
    secret.
    """
    credential = _require_credential(credential)
    secret = credential.require_secret()

    proxy_config = resolve_proxy(proxy)
    if interactive_handler is None:
        interactive_handler = PasswordChallengeHandler(secret.copy())

    descriptor = ConnectionDescriptor(
        target=target,
        username=credential.username,
        auth_methods=(
            PasswordAuth(credential.username, secret.copy()),
            KeyboardInteractiveAuth(credential.username, interactive_handler),
        ),
        proxy=proxy_config,
    )
    logger.debug("Built password connection descriptor: %s", descriptor.to_dict())
    return descriptor
