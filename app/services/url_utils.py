from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import HTTPException, status

ALLOWED_REDIRECT_SCHEMES = {"http", "https"}
MAX_REDIRECT_URL_LENGTH = 2048


def append_query_param(url: str, key: str, value: str | int) -> str:
    """Append a query parameter to URL while preserving existing query params and fragments."""
    parts = urlsplit(url)
    query_params = parse_qsl(parts.query, keep_blank_values=True)
    query_params.append((key, str(value)))
    return urlunsplit(parts._replace(query=urlencode(query_params)))


def validate_checkout_redirect_url(url: str, field_name: str) -> str:
    """Validate a client-supplied returnUrl/cancelUrl for hosted checkout.

    Allows only absolute HTTP(S) URLs without embedded user credentials.
    """
    if len(url) > MAX_REDIRECT_URL_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} is too long",
        )
    parts = urlsplit(url)
    if parts.scheme not in ALLOWED_REDIRECT_SCHEMES or not parts.netloc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} must be an absolute http(s) URL",
        )
    if parts.username or parts.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} must not contain credentials",
        )
    return url
