from __future__ import annotations

import json
import os
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def _safe_str(x: Any) -> str:
    try:
        return str(x)
    except Exception:
        return '<unprintable>'


class LoggingHandler:
    """
    Centralized, configurable logging sink with per-aspect gating.

    - Format: JSONL or plain text
    - File policy: per-run timestamped file in [LOG].dir or explicit [LOG].file
    - Console mirror: optional, through a rich Console (or any object with print())
    - Redaction & truncation: applied to data payloads
    """

    _LEVELS = {
        'off': 0,
        'minimal': 1,
        'basic': 1,
        'detail': 2,
        'trace': 3,
    }

    _DEFAULTS = {
        'settings': 'basic',
        'registry': 'off',
        'runner': 'basic',
        'navigation': 'basic',
        'auth': 'basic',
        'errors': 'basic',
    }

    _DEFAULT_REDACT = ['password', 'token', 'secret', 'authorization']

    def __init__(self, config, console=None) -> None:
        self._config = config
        self._console = console
        self._active: bool = bool(self._get('active', False))
        self._format: str = (self._get('format', 'json') or 'json').strip().lower()
        if self._format not in ('json', 'text'):
            self._format = 'json'
        self._mirror: bool = bool(self._get('mirror_to_console', False))
        self._redact: bool = bool(self._get('redact', True))
        self._truncate: int = int(self._get('truncate_chars', 2000) or 2000)
        self._verbosity_base: Optional[str] = (self._get('verbosity', None) or None)
        if isinstance(self._verbosity_base, str):
            self._verbosity_base = self._verbosity_base.strip().lower()
        self._aspects: Dict[str, int] = {}
        for asp, default in self._DEFAULTS.items():
            raw = self._get(f'log_{asp}', None)
            if isinstance(raw, str) and raw.strip():
                level_name = raw.strip().lower()
            elif isinstance(self._verbosity_base, str):
                level_name = self._verbosity_base
            else:
                level_name = default
            self._aspects[asp] = self._LEVELS.get(level_name, self._LEVELS['off'])

        self._run_id = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')
        self._log_path: Optional[str] = None
        if self._active:
            self._log_path = self._open_logfile()
            if self._mirror and self._console is None:
                from rich.console import Console
                self._console = Console(stderr=True)
        self._write = self._writer_json if self._format == 'json' else self._writer_text

    # --- Public helpers -------------------------------------------------
    def active(self) -> bool:
        return bool(self._active and self._log_path)

    @property
    def log_path(self) -> Optional[str]:
        return self._log_path

    def log(self, event: str, *, component: str, aspect: str, severity: str = 'info', data: Optional[dict] = None) -> None:
        if not self._should_log(aspect, 'basic'):
            return
        self._write(self._prepare_payload(event, component, aspect, severity, data or {}))

    def is_enabled(self, aspect: str, min_level: str = 'basic') -> bool:
        """Return True if logging is active and the given aspect meets the min level."""
        return self._should_log(aspect, min_level)

    def settings(self, effective: dict) -> None:
        if not self._should_log('settings', 'basic'): return
        self._write(self._prepare_payload('settings', 'main', 'settings', 'info', effective))

    def registry_event(self, kind: str, details: dict, component: str = 'core.page_registry') -> None:
        if not self._should_log('registry', 'basic'): return
        self._write(self._prepare_payload(kind, component, 'registry', 'info', details))

    def registry_detail(self, kind: str, details: dict, component: str = 'core.page_registry') -> None:
        """Per-registration events; emitted only when [LOG].log_registry >= detail."""
        if not self._should_log('registry', 'detail'): return
        self._write(self._prepare_payload(kind, component, 'registry', 'debug', details))

    def runner_event(self, kind: str, details: dict, component: str = 'core.runner') -> None:
        if not self._should_log('runner', 'basic'): return
        severity = 'error' if kind.endswith('failed') else 'info'
        self._write(self._prepare_payload(kind, component, 'runner', severity, details))

    def navigation_event(self, kind: str, details: dict, component: str = 'tui.navigation') -> None:
        if not self._should_log('navigation', 'basic'): return
        self._write(self._prepare_payload(kind, component, 'navigation', 'info', details))

    def auth_event(self, kind: str, details: dict, component: str = 'core.preview_manager') -> None:
        if not self._should_log('auth', 'basic'): return
        self._write(self._prepare_payload(kind, component, 'auth', 'info', details))

    def error(self, where: str, exc: BaseException, *, stack: Optional[str] = None) -> None:
        if not self._should_log('errors', 'basic'): return
        s = stack or ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self._write(self._prepare_payload('error', where, 'errors', 'error', {'message': _safe_str(exc), 'stack': s}))

    # --- Internals ------------------------------------------------------
    def _get(self, key: str, fallback: Any = None) -> Any:
        try:
            return self._config.get_option('LOG', key, fallback)
        except Exception:
            return fallback

    def _open_logfile(self) -> Optional[str]:
        try:
            # Application root: directory containing main.py (one level above utils/)
            app_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

            explicit = (self._get('file', '') or '').strip()
            per_run = bool(self._get('per_run', True))
            raw_dir = self._get('dir', 'logs') or 'logs'

            raw_dir = os.path.expanduser(str(raw_dir))
            log_dir = raw_dir if os.path.isabs(raw_dir) else os.path.join(app_root, raw_dir)
            os.makedirs(log_dir, exist_ok=True)

            if explicit:
                explicit = os.path.expanduser(explicit)
                path = explicit if os.path.isabs(explicit) else os.path.join(log_dir, explicit)
            else:
                filename = f'preview-{self._run_id}.log' if per_run else 'preview.log'
                path = os.path.join(log_dir, filename)

            os.makedirs(os.path.dirname(path) or log_dir, exist_ok=True)
            with open(path, 'a', encoding='utf-8'):
                pass

            if bool(self._get('symlink_latest', True)):
                try:
                    latest = os.path.join(log_dir, 'latest.log')
                    if os.path.islink(latest) or os.path.exists(latest):
                        os.remove(latest)
                    os.symlink(os.path.abspath(path), latest)
                except OSError:
                    pass
            return path
        except OSError:
            return None

    def _level_for(self, aspect: str) -> int:
        return self._aspects.get(aspect, 0)

    def _should_log(self, aspect: str, min_level_name: str) -> bool:
        if not self._active or not self._log_path:
            return False
        return self._level_for(aspect) >= self._LEVELS.get(min_level_name, 1)

    def _redact_keys(self) -> list:
        raw = self._get('redact_keys', None)
        if isinstance(raw, list):
            return [str(k).strip().lower() for k in raw if str(k).strip()]
        if isinstance(raw, str) and raw.strip():
            return [k.strip().lower() for k in raw.split(',') if k.strip()]
        return list(self._DEFAULT_REDACT)

    def _redact_and_truncate(self, data: Any) -> Any:
        keys = self._redact_keys()

        def _walk(obj: Any) -> Any:
            if isinstance(obj, str):
                if self._truncate and len(obj) > self._truncate:
                    return obj[: self._truncate] + '…'
                return obj
            if isinstance(obj, dict):
                out = {}
                for k, v in obj.items():
                    kk = _safe_str(k)
                    if self._redact and kk.lower() in keys:
                        out[kk] = '***redacted***'
                    else:
                        out[kk] = _walk(v)
                return out
            if isinstance(obj, (list, tuple)):
                return [_walk(x) for x in obj]
            return obj

        return _walk(data)

    def _prepare_payload(self, event: str, component: str, aspect: str, severity: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'ts': _now_iso(),
            'run_id': self._run_id,
            'event': event,
            'component': component,
            'aspect': aspect,
            'severity': severity,
            'data': self._redact_and_truncate(data or {}),
        }

    def _append(self, line: str) -> None:
        try:
            with open(self._log_path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
        except OSError:
            pass
        if self._mirror and self._console is not None:
            try:
                self._console.print(line, markup=False, highlight=False)
            except Exception:
                pass

    def _writer_json(self, payload: Dict[str, Any]) -> None:
        try:
            line = json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError):
            # Fallback: stringify data
            safe = dict(payload)
            safe['data'] = _safe_str(payload.get('data'))
            line = json.dumps(safe, ensure_ascii=False)
        self._append(line)

    def _writer_text(self, payload: Dict[str, Any]) -> None:
        data = payload.get('data') or {}
        pairs = []
        for k, v in (data.items() if isinstance(data, dict) else []):
            vv = v
            if isinstance(vv, (dict, list)):
                try:
                    vv = json.dumps(vv, ensure_ascii=False)
                except (TypeError, ValueError):
                    vv = _safe_str(vv)
            pairs.append(f"{k}={vv}")
        line = (
            f"[{payload.get('ts')}] {payload.get('component')} "
            f"{payload.get('aspect')}:{payload.get('event')} " + ' '.join(pairs)
        )
        self._append(line.rstrip())
