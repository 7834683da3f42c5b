"""
Credential passwords — OS keychain first, interactive prompt second.

Each credential environment has its own password, stored in the system
keychain (via ``keyring``) under::

    service = "<keychain_prefix>_<environment>"     e.g. dev_env_credentials_main
    user    = <current login name>

On a miss the user is prompted (input hidden) and then asked whether to
save the password in the keychain.  The prompt and confirm callables are
injected so this module never imports click; the CLI wires them up.

The password is never written into the encrypted file.
"""

from __future__ import annotations

import getpass
import logging
from typing import Callable, Optional

import keyring
from keyring.errors import KeyringError

from devstrap.core.errors import DevstrapError

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "dev_env_credentials"

PasswordProvider = Callable[[str], str]
Prompt = Callable[[str], str]
Confirm = Callable[[str], bool]


def keychain_service(environment: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}_{environment}"


def current_user() -> str:
    return getpass.getuser()


def lookup_password(environment: str, prefix: str = DEFAULT_PREFIX) -> Optional[str]:
    """Keychain lookup.  Backend errors count as a miss."""
    service = keychain_service(environment, prefix)
    try:
        password = keyring.get_password(service, current_user())
    except KeyringError as e:
        logger.debug("Keychain lookup for %s failed: %s", service, e)
        return None
    if password:
        logger.debug("Password for '%s' found in keychain", environment)
    return password or None


def save_password(environment: str, password: str, prefix: str = DEFAULT_PREFIX) -> bool:
    """Store *password* in the keychain.  Returns False if the backend refused."""
    service = keychain_service(environment, prefix)
    try:
        keyring.set_password(service, current_user(), password)
    except KeyringError as e:
        logger.warning("Could not save password to keychain (%s): %s", service, e)
        return False
    logger.info("Password for '%s' saved to keychain", environment)
    return True


class KeychainPasswordSource:
    """Callable ``environment → password`` backed by the keychain.

    Passwords are remembered for the lifetime of the instance, so one
    command that decrypts and re-encrypts an environment asks at most once.

    Args:
        prefix:  Keychain service prefix.
        prompt:  Hidden-input prompt, called with a message.  None means
                 non-interactive: a keychain miss is an error.
        confirm: Yes/no question for saving to the keychain.  None means
                 never save.
    """

    def __init__(
        self,
        prefix: str = DEFAULT_PREFIX,
        prompt: Optional[Prompt] = None,
        confirm: Optional[Confirm] = None,
    ):
        self.prefix = prefix
        self._prompt = prompt
        self._confirm = confirm
        self._cache: dict[str, str] = {}

    def __call__(self, environment: str) -> str:
        if environment in self._cache:
            return self._cache[environment]

        password = lookup_password(environment, self.prefix)
        if password is None:
            password = self._ask(environment)

        self._cache[environment] = password
        return password

    def _ask(self, environment: str) -> str:
        if self._prompt is None:
            raise DevstrapError(
                f"No password for '{environment}' in keychain "
                f"(service {keychain_service(environment, self.prefix)}) and no prompt available"
            )

        password = self._prompt(f"Enter encryption password for '{environment}' environment")
        if not password:
            raise DevstrapError("Password must not be empty")

        if self._confirm is not None and self._confirm("Save password in keychain?"):
            save_password(environment, password, self.prefix)
        return password
