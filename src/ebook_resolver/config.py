"""Configuration management with Pydantic models."""

from pathlib import Path

from pydantic import BaseModel, Field, model_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class FetcherConfig(BaseModel):
    """Configuration for plain HTTP page fetching."""

    timeout_ms: int = Field(default=15000, ge=1000, le=120000)
    user_agent: str = DEFAULT_USER_AGENT
    accept_invalid_certs: bool = True  # Mirrors commonly use self-signed certs
    max_redirects: int = Field(default=5, ge=0, le=20)
    max_retries: int = Field(default=1, ge=0, le=5)
    retry_base_delay: float = Field(default=1.0, ge=0.0, le=30.0)


class BrowserConfig(BaseModel):
    """Configuration for headless browser navigation."""

    headless: bool = True
    launch_args: list[str] = Field(
        default_factory=lambda: ["--no-sandbox", "--disable-setuid-sandbox"]
    )
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = Field(default=1280, ge=320)
    viewport_height: int = Field(default=720, ge=240)
    navigation_timeout_ms: int = Field(default=30000, ge=100, le=120000)
    link_wait_timeout_ms: int = Field(default=60000, ge=0, le=120000)
    link_poll_interval_ms: int = Field(default=500, ge=0, le=10000)
    click_outcome_timeout_ms: int = Field(default=15000, ge=0, le=120000)
    download_timeout_ms: int = Field(default=60000, ge=100, le=300000)
    popup_dismiss_delay_ms: int = Field(default=2000, ge=0, le=30000)
    challenge_retries: int = Field(default=1, ge=0, le=5)
    max_click_hops: int = Field(default=2, ge=1, le=5)
    link_text_tokens: list[str] = Field(default_factory=lambda: ["GET"])
    link_href_pattern: str = r"/get\.php\?|/download/|/dl/|\.(epub|mobi|azw3|pdf)(\?|$)"


class EvasionConfig(BaseModel):
    """Configuration for human-like pointer and scroll behavior."""

    enabled: bool = True
    waypoints: int = Field(default=3, ge=2, le=10)
    pointer_steps: int = Field(default=12, ge=1, le=100)
    scroll_min_px: int = Field(default=200, ge=0)
    scroll_max_px: int = Field(default=500, ge=0)
    dwell_min_ms: int = Field(default=150, ge=0)
    dwell_max_ms: int = Field(default=600, ge=0)
    jitter_px: float = Field(default=4.0, ge=0.0, le=50.0)

    @model_validator(mode="after")
    def _check_ranges(self) -> "EvasionConfig":
        if self.scroll_max_px < self.scroll_min_px:
            raise ValueError("scroll_max_px must be >= scroll_min_px")
        if self.dwell_max_ms < self.dwell_min_ms:
            raise ValueError("dwell_max_ms must be >= dwell_min_ms")
        return self


class ResolverConfig(BaseModel):
    """Configuration for the resolution pipeline as a whole."""

    overall_budget_seconds: float = Field(default=180.0, ge=1.0, le=300.0)
    max_intermediate_hops: int = Field(default=1, ge=0, le=3)


class AppConfig(BaseModel):
    """Main application configuration."""

    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    evasion: EvasionConfig = Field(default_factory=EvasionConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    verbose: bool = False

    @classmethod
    def from_toml(cls, path: Path) -> "AppConfig":
        """Load config from a TOML file."""
        try:
            import tomllib  # type: ignore[import-not-found]
        except ModuleNotFoundError:
            import tomli as tomllib  # type: ignore[import-not-found]
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)

    def to_toml(self, exclude_defaults: bool = True) -> str:
        """Serialize config to TOML format."""
        data = self.model_dump(mode="json", exclude_defaults=exclude_defaults)
        return _dict_to_toml(data)


def _toml_value(v: object) -> str:
    """Format a Python value as a TOML literal."""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float):
        return f"{v}"
    if isinstance(v, str):
        escaped = v.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(v, list):
        items = ", ".join(_toml_value(i) for i in v)
        return f"[{items}]"
    return f'"{v}"'


def _dict_to_toml(data: dict, prefix: str = "") -> str:
    """Convert a nested dict to TOML string (2 levels deep max)."""
    lines: list[str] = []
    # Emit top-level scalar keys first
    for k, v in data.items():
        if not isinstance(v, dict):
            lines.append(f"{k} = {_toml_value(v)}")
    # Emit table sections
    for k, v in data.items():
        if isinstance(v, dict):
            section = f"{prefix}{k}" if not prefix else f"{prefix}.{k}"
            lines.append(f"\n[{section}]")
            for sk, sv in v.items():
                lines.append(f"{sk} = {_toml_value(sv)}")
    if not lines:
        return ""
    return "\n".join(lines).lstrip("\n") + "\n"
