"""Recovery links: a shareable URL that restores a mailbox on another device.

The link embeds the account's token, so whoever holds it has full access
to the mailbox.
"""

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from tempvortex.models.mailbox import Account, ProviderId

RECOVERY_PARAMS = ("account", "token", "provider")


def encode_recovery_url(account: Account, base_url: str = "/") -> str:
    """Build ``base_url?account=..&provider=..[&token=..]``."""
    params = [("account", account.address), ("provider", account.provider.value)]
    if account.token:
        params.append(("token", account.token))

    parts = urlsplit(base_url)
    existing = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in RECOVERY_PARAMS
    ]
    query = urlencode(existing + params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", query, parts.fragment))


def decode_recovery_url(url: str) -> Optional[Account]:
    """
    Rebuild an Account from a recovery URL (or bare query string).

    Returns:
        The account, or None when ``account``/``provider`` are missing or
        the provider is unknown
    """
    query = urlsplit(url).query if ("?" in url or "://" in url) else url.lstrip("?")
    params = dict(parse_qsl(query))
    address = params.get("account")
    provider = params.get("provider")
    if not address or not provider:
        return None
    try:
        provider_id = ProviderId(provider)
    except ValueError:
        return None
    return Account(address=address, token=params.get("token") or None, provider=provider_id)


def strip_recovery_params(url: str) -> str:
    """Remove the recovery parameters, keeping everything else."""
    parts = urlsplit(url)
    remaining = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in RECOVERY_PARAMS
    ]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(remaining), parts.fragment))
