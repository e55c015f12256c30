from typing import Optional


def mask_token(text: str, token: Optional[str]) -> str:
    return text.replace(token, f"{token[:4]}****") if token else text


def mask_authorization(value: Optional[str]) -> str:
    """Keep the auth scheme readable in logs, hide the credential."""
    if not value:
        return "<empty>"
    scheme, _, credential = value.partition(" ")
    if not credential:
        return mask_token(value, value)
    return f"{scheme} {mask_token(credential, credential)}"
