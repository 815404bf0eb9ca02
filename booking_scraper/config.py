from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings

from booking_scraper.schemas.search import BackendName
from booking_scraper.services.stealth import StealthOptions


class BackendConfig(BaseModel):
    """Immutable view of everything that decides which backends can run."""

    model_config = ConfigDict(frozen=True)

    remote_render_api_key: str | None = None
    prefer_remote_render: bool = False
    remote_render_geolocation: str | None = None
    remote_render_timeout: float = 120.0
    cloud_browser_token: str | None = None
    cloud_browser_endpoint: str = "wss://chrome.browserless.io"
    serverless: bool = False
    serverless_executable_path: str | None = None
    local_browser_enabled: bool = True
    headless: bool = True
    disable_sandbox: bool = False
    failover_enabled: bool = True
    navigation_timeout_ms: int = 60_000
    min_content_length: int = 5000
    stealth: StealthOptions = StealthOptions()

    def available_backends(self) -> list[BackendName]:
        backends: list[BackendName] = []
        if self.cloud_browser_token:
            backends.append(BackendName.cloud_browser)
        if not self.serverless and self.local_browser_enabled:
            backends.append(BackendName.local_browser)
        if self.serverless and self.serverless_executable_path:
            backends.append(BackendName.serverless_browser)
        if self.remote_render_api_key:
            if self.prefer_remote_render:
                backends.insert(0, BackendName.remote_render)
            else:
                backends.append(BackendName.remote_render)
        return backends

    def missing_configuration(self) -> str:
        if self.serverless:
            return (
                "No scraping backend configured for serverless environment. "
                "Set ZYTE_API_KEY, BROWSERLESS_TOKEN or SERVERLESS_CHROMIUM_PATH."
            )
        return (
            "No scraping backend configured. Enable LOCAL_BROWSER_ENABLED "
            "or set ZYTE_API_KEY or BROWSERLESS_TOKEN."
        )


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    zyte_api_key: str = ""
    use_zyte: bool = False
    zyte_geolocation: str = ""
    zyte_timeout: float = 120.0
    browserless_token: str = ""
    browserless_endpoint: str = "wss://chrome.browserless.io"
    local_browser_enabled: bool = True
    browser_headless: bool = True
    browser_no_sandbox: bool = False
    serverless_chromium_path: str = ""
    aws_lambda_function_name: str = ""
    appwrite_function_id: str = ""
    vercel: str = ""
    netlify: str = ""
    failover_enabled: bool = True
    navigation_timeout_ms: int = 60_000
    min_content_length: int = 5000
    stealth_rotate_user_agent: bool = True
    stealth_seed_identity: bool = True
    stealth_block_resources: bool = True
    stealth_human_delays: bool = True
    stealth_dismiss_overlays: bool = True
    stealth_trigger_lazy_content: bool = True
    log_level: str = "INFO"

    @property
    def is_serverless(self) -> bool:
        return any((
            self.aws_lambda_function_name,
            self.appwrite_function_id,
            self.vercel,
            self.netlify,
        ))

    def backend_config(self) -> BackendConfig:
        return BackendConfig(
            remote_render_api_key=self.zyte_api_key or None,
            prefer_remote_render=self.use_zyte,
            remote_render_geolocation=self.zyte_geolocation or None,
            remote_render_timeout=self.zyte_timeout,
            cloud_browser_token=self.browserless_token or None,
            cloud_browser_endpoint=self.browserless_endpoint,
            serverless=self.is_serverless,
            serverless_executable_path=self.serverless_chromium_path or None,
            local_browser_enabled=self.local_browser_enabled,
            headless=self.browser_headless,
            disable_sandbox=self.browser_no_sandbox,
            failover_enabled=self.failover_enabled,
            navigation_timeout_ms=self.navigation_timeout_ms,
            min_content_length=self.min_content_length,
            stealth=StealthOptions(
                rotate_user_agent=self.stealth_rotate_user_agent,
                seed_identity=self.stealth_seed_identity,
                block_resources=self.stealth_block_resources,
                human_delays=self.stealth_human_delays,
                dismiss_overlays=self.stealth_dismiss_overlays,
                trigger_lazy_content=self.stealth_trigger_lazy_content,
            ),
        )
