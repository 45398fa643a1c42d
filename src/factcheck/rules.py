# src/factcheck/rules.py
"""
File-driven fact rules.

The rule file is a JSON list. Each rule has a `type`:

    containsAny  - any of `keywords` appears in the text
    containsAll  - every keyword appears
    equals       - the normalized text equals `text`
    regex        - `pattern` matches (`flags` may contain "i", "m", "s")
    numberRange  - optional `patterns` gate, then the first number in the text
                   is checked against `trueRange` [min, max]

A hit returns {"verdict", "confidence", "claim"}. The file is re-read
whenever its modification time changes.
"""
import json
import logging
import os
import re
import threading
from typing import Optional, Dict, Any, List

from config import settings

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"(\d+(?:\.\d+)?)\s*(m|meter|meters|km|kilometer|kilometers|ft|feet)?\b")
_FLAG_MAP = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def _norm(s) -> str:
    return re.sub(r"\s+", " ", str(s or "").lower().strip())


def _float(value, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class FactRules:
    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.FACTS_PATH
        self._rules: List[Dict[str, Any]] = []
        self._mtime: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def rules(self) -> List[Dict[str, Any]]:
        self.reload_if_changed()
        return self._rules

    def reload_if_changed(self) -> None:
        try:
            mtime = os.stat(self.path).st_mtime
        except OSError:
            if self._mtime is not None:
                logger.warning("Fact rule file %s disappeared", self.path)
            self._rules, self._mtime = [], None
            return
        if mtime == self._mtime:
            return
        with self._lock:
            try:
                with open(self.path, "r", encoding="utf-8") as fh:
                    data = json.load(fh)
            except (OSError, ValueError) as e:
                logger.warning("Fact rule file %s failed to load: %s", self.path, e)
                self._rules, self._mtime = [], mtime
                return
            self._rules = [r for r in data if isinstance(r, dict)] if isinstance(data, list) else []
            self._mtime = mtime
            logger.info("Loaded %d fact rules from %s", len(self._rules), self.path)

    def match(self, text: str) -> Optional[Dict[str, Any]]:
        raw = str(text or "")
        n = _norm(raw)
        for rule in self.rules:
            hit = self._match_one(rule, raw, n)
            if hit is not None:
                return hit
        return None

    @staticmethod
    def _match_one(rule: Dict[str, Any], raw: str, n: str) -> Optional[Dict[str, Any]]:
        kind = rule.get("type") or "containsAny"
        base_conf = _float(
            rule.get("confidence", rule.get("confidenceFalse", rule.get("confidenceTrue"))), 0.8
        )
        verdict = rule.get("verdict") or "false"

        def hit(v=verdict, c=base_conf):
            return {"verdict": v, "confidence": c, "claim": raw}

        if kind == "containsAll":
            words = [_norm(k) for k in rule.get("keywords") or []]
            if words and all(w in n for w in words):
                return hit()
        elif kind == "containsAny":
            words = [_norm(k) for k in rule.get("keywords") or []]
            if words and any(w in n for w in words):
                return hit()
        elif kind == "equals":
            if _norm(rule.get("text")) == n:
                return hit()
        elif kind == "regex":
            flags = 0
            for ch in rule.get("flags") or "i":
                flags |= _FLAG_MAP.get(ch, 0)
            try:
                if re.search(rule.get("pattern") or "", raw, flags):
                    return hit()
            except re.error:
                logger.warning("Skipping fact rule with bad regex %r", rule.get("pattern"))
        elif kind == "numberRange":
            gates = rule.get("patterns") or []
            if gates and not any(_norm(p) in n for p in gates):
                return None
            m = _NUMBER.search(n)
            bounds = rule.get("trueRange") or []
            if not m or len(bounds) != 2:
                return None
            try:
                lo, hi = float(bounds[0]), float(bounds[1])
            except (TypeError, ValueError):
                return None
            val = float(m.group(1))
            if lo <= val <= hi:
                return hit(rule.get("trueVerdict") or "true", _float(rule.get("confidenceTrue"), base_conf))
            return hit(rule.get("ifOutsideVerdict") or "false", _float(rule.get("confidenceFalse"), base_conf))
        return None


_default_rules: Optional[FactRules] = None


def get_rules() -> FactRules:
    global _default_rules
    if _default_rules is None:
        _default_rules = FactRules()
    return _default_rules


def match_rule(text: str) -> Optional[Dict[str, Any]]:
    return get_rules().match(text)
