class MercadoLivreApiError(Exception):
    """Raised when a Mercado Livre API call outside the price chain fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TokenError(MercadoLivreApiError):
    """Raised when an access token cannot be obtained."""
