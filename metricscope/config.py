"""Configuration models using Pydantic for validation."""
from typing import List, Literal
from pydantic import BaseModel, Field, field_validator
import os

from metricscope.series import CUSTOM, SERVER_REQUEST, RUNTIME


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"


class ClassifierRule(BaseModel):
    """Routes metric names starting with `prefix` into `bucket`."""
    prefix: str = Field(min_length=1)
    bucket: Literal["custom", "server_request", "runtime"]


def default_rules() -> List[ClassifierRule]:
    """Built-in routing table, most specific prefix first."""
    return [
        ClassifierRule(prefix="mw_", bucket=CUSTOM),
        ClassifierRule(prefix="http_request_", bucket=SERVER_REQUEST),
        ClassifierRule(prefix="http_", bucket=SERVER_REQUEST),
        ClassifierRule(prefix="nodejs_", bucket=RUNTIME),
        ClassifierRule(prefix="process_", bucket=RUNTIME),
    ]


class ClassifierConfig(BaseModel):
    """Ordered prefix rules; the first matching rule wins."""
    rules: List[ClassifierRule] = Field(default_factory=default_rules)

    @field_validator('rules')
    @classmethod
    def validate_rule_order(cls, v):
        """Reject rules that an earlier, broader prefix makes unreachable."""
        for i, later in enumerate(v):
            for earlier in v[:i]:
                if later.prefix.startswith(earlier.prefix):
                    raise ValueError(
                        f"Rule '{later.prefix}' is shadowed by earlier rule "
                        f"'{earlier.prefix}'; order rules most specific first"
                    )
        return v


class DashboardConfig(BaseModel):
    """Metric and label names the dashboard views are computed from."""
    provider_status_metric: str = "mw_provider_status_count"
    provider_tool_metric: str = "mw_provider_tool_count"
    provider_hostname_metric: str = "mw_provider_hostname_count"
    user_count_metric: str = "mw_user_count"
    request_duration_base: str = "http_request_duration_seconds"
    event_loop_lag_metric: str = "nodejs_eventloop_lag_seconds"

    provider_label: str = "provider_id"
    status_label: str = "status"
    tool_label: str = "tool"
    hostname_label: str = "hostname"
    method_label: str = "method"
    route_label: str = "route"

    top_n: int = Field(default=10, ge=1)
    # Seconds to milliseconds for response time views
    duration_scale: float = 1000.0


class Config(BaseModel):
    """Root configuration model."""
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)

    model_config = {"populate_by_name": True}


def load_config(config_path: str) -> Config:
    """Load and validate configuration from YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ValueError("Configuration validation failed: top level must be a mapping")

    # Apply environment variable overrides
    if env_log_level := os.getenv('LOG_LEVEL'):
        if 'global' not in raw_config:
            raw_config['global'] = {}
        raw_config['global']['log_level'] = env_log_level

    if env_top_n := os.getenv('METRICSCOPE_TOP_N'):
        if 'dashboard' not in raw_config:
            raw_config['dashboard'] = {}
        raw_config['dashboard']['top_n'] = env_top_n

    try:
        config = Config(**raw_config)
        return config
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
