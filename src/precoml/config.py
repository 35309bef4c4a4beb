from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    host: str = "127.0.0.1"
    port: int = 8001

    # Mercado Livre API
    ml_api_base: str = "https://api.mercadolibre.com"
    ml_auth_base: str = "https://auth.mercadolivre.com.br"
    ml_site_id: str = "MLB"
    ml_user_agent: str = "ImportCostControl/1.0 (server)"
    ml_request_timeout: float = 10.0

    # OAuth (refresh_token grant)
    ml_app_id: str = ""
    ml_app_secret: str = ""
    ml_refresh_token: str = ""
    ml_redirect_uri: str = ""

    @property
    def oauth_enabled(self) -> bool:
        return bool(self.ml_app_id and self.ml_app_secret and self.ml_refresh_token)

    # Scrape fallback via remote browser-rendering service
    scrape_enabled: bool = False
    scrape_timeout: float = 20.0
    render_service_url: str = ""
    render_service_token: str = ""

    @property
    def render_enabled(self) -> bool:
        return bool(self.render_service_url)

    # Bounds for the generic "R$ 1.234,56" scan (keeps installment amounts out)
    min_plausible_price: float = 5.0
    max_plausible_price: float = 1_000_000.0

    # Import cost defaults
    usd_brl: float = 5.0
    ii_rate: float = 0.60            # Imposto de Importação
    icms_rate: float = 0.17
    commission_pct: float = 16.0     # ML sale commission (%)
    revenue_tax_pct: float = 6.0     # tax on invoiced revenue (%)

    # Log
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
