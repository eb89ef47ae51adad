"""Keyboard-emulation barcode decoding.

USB readers in keyboard-emulation mode type the digits of a code within a
few milliseconds and usually finish with Enter. A :class:`ScanDecoder` turns
those key events into validated codes and tells them apart from a person
typing on a keyboard. One decoder serves one physical input stream.
"""

from __future__ import annotations

import logging

from .config import ScannerConfig
from .models import DecodeResult, RejectReason
from .util import ean_checksum_ok, is_numeric, normalize_code

_LOGGER = logging.getLogger(__name__)
_DIGITS = frozenset("0123456789")


class ScanDecoder:
    """Accumulate digits from key events and emit codes."""

    def __init__(self, config: ScannerConfig | None = None) -> None:
        self._config = config or ScannerConfig()
        self._buffer: list[str] = []
        self._last_key_ms: int | None = None
        # Last acceptance time per code, pruned once outside the debounce window.
        self._accepted_ms: dict[str, int] = {}

    @property
    def config(self) -> ScannerConfig:
        return self._config

    @property
    def buffer(self) -> str:
        return "".join(self._buffer)

    def reset(self) -> None:
        self._buffer.clear()
        self._last_key_ms = None

    def expire(self, now_ms: int) -> bool:
        """Discard a stale buffer; return True when something was dropped."""
        if not self._buffer or self._last_key_ms is None:
            return False
        if now_ms - self._last_key_ms <= self._config.inter_key_timeout_ms:
            return False
        _LOGGER.debug("Scanner buffer timed out after %s digits", len(self._buffer))
        self.reset()
        return True

    def feed(self, key: str, timestamp_ms: int) -> DecodeResult:
        """Process one key event and return the decoder state after it."""
        config = self._config
        if key in config.ignored_keys:
            return DecodeResult.pending()

        if key in _DIGITS:
            self.expire(timestamp_ms)
            self._buffer.append(key)
            self._last_key_ms = timestamp_ms
            if not config.require_terminator and len(self._buffer) >= config.max_length:
                return self._flush(timestamp_ms)
            return DecodeResult.pending()

        if key in config.terminators:
            self.expire(timestamp_ms)
            if not self._buffer:
                return DecodeResult.pending()
            return self._flush(timestamp_ms)

        if self._buffer:
            _LOGGER.debug("Scanner buffer discarded on non-digit key")
            self.reset()
        return DecodeResult.pending()

    def feed_text(self, text: str, start_ms: int = 0, step_ms: int = 0) -> list[DecodeResult]:
        """Feed every character of ``text`` and return the non-pending results."""
        results: list[DecodeResult] = []
        for index, key in enumerate(text):
            result = self.feed(key, start_ms + index * step_ms)
            if result.code is not None or result.reason is not None:
                results.append(result)
        return results

    def is_valid(self, code: str) -> bool:
        config = self._config
        if not is_numeric(code):
            return False
        if not config.min_length <= len(code) <= config.max_length:
            return False
        if config.allowed_lengths is not None and len(code) not in config.allowed_lengths:
            return False
        if config.verify_checksum and not ean_checksum_ok(code):
            return False
        return True

    def _flush(self, timestamp_ms: int) -> DecodeResult:
        raw = self.buffer
        self.reset()
        code = normalize_code(raw, full_length=self._config.full_length)
        if not self.is_valid(code):
            _LOGGER.debug("Scanner rejected code of length %s", len(raw))
            return DecodeResult.rejected(RejectReason.INVALID_FORMAT, raw)
        self._prune(timestamp_ms)
        if code in self._accepted_ms:
            _LOGGER.debug("Scanner ignored repeated code %s", code)
            return DecodeResult.rejected(RejectReason.DEBOUNCED, code)
        self._accepted_ms[code] = timestamp_ms
        return DecodeResult.decoded(code)

    def _prune(self, timestamp_ms: int) -> None:
        window = self._config.debounce_ms
        stale = [code for code, seen in self._accepted_ms.items() if timestamp_ms - seen >= window]
        for code in stale:
            del self._accepted_ms[code]
