"""Configuration-based log discovery for logrotate, rsyslog and syslog-ng."""

from __future__ import annotations

from .logrotate import (
    LogRotationInfo,
    RotationPolicy,
    detect_log_rotation,
    parse_logrotate_config,
    parse_logrotate_config_dir,
)
from .rsyslog import RSYSLOG_CONFIG, parse_rsyslog_config, parse_selector
from .syslog_ng import SYSLOG_NG_CONFIGS, parse_syslog_ng_config

__all__ = [
    "RSYSLOG_CONFIG",
    "SYSLOG_NG_CONFIGS",
    "LogRotationInfo",
    "RotationPolicy",
    "detect_log_rotation",
    "parse_logrotate_config",
    "parse_logrotate_config_dir",
    "parse_rsyslog_config",
    "parse_selector",
    "parse_syslog_ng_config",
]
