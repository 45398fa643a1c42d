# src/factcheck/gemini.py
"""
Gemini `generateContent` client used to annotate posts.

`factcheck_with_gemini` never raises: every failure comes back as
{"ok": False, "error": <code>} so callers can fall through to heuristics.
"""
import json
import logging
from typing import Dict, Any, Optional

import requests

from config import settings
from model.enums import VERDICTS

logger = logging.getLogger(__name__)

API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

PROMPT = """You are a strict fact-checking AI for a social media platform.

Task:
1) Decide if the post contains a verifiable factual claim.
2) If yes, rate it with ONLY one of:
   "true", "false", "misleading", "outdated", "satire".
3) If it is an opinion/personal experience/ambiguous, use "opinion".
4) If you cannot tell from your knowledge, use "unverified".
Return ONLY JSON per the schema. No markdown, no prose.

Post: \"\"\"{text}\"\"\""""

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "verdict": {"type": "STRING", "enum": list(VERDICTS)},
        "explanation": {"type": "STRING"},
        "confidence": {"type": "NUMBER"},
    },
    "required": ["verdict", "explanation"],
    "propertyOrdering": ["verdict", "confidence", "explanation"],
}


def build_prompt(text: str) -> str:
    return PROMPT.format(text=(text or "").strip())


def build_payload(text: str) -> Dict[str, Any]:
    return {
        "contents": [{"parts": [{"text": build_prompt(text)}]}],
        "generationConfig": {
            "temperature": 0,
            "thinkingConfig": {"thinkingBudget": 0},
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }


def factcheck_with_gemini(text: str, api_key: Optional[str] = None, model: Optional[str] = None,
                          timeout: Optional[float] = None, session=None) -> Dict[str, Any]:
    """Ask Gemini for a verdict on `text`.

    Returns {"ok": True, "verdict", "explanation", "confidence"?} or
    {"ok": False, "error": missing_api_key | http_<status> | bad_json | network_error | exception, "detail"?}.
    """
    api_key = settings.GEMINI_API_KEY if api_key is None else api_key
    if not api_key:
        return {"ok": False, "error": "missing_api_key"}

    url = API_URL.format(model=model or settings.GEMINI_MODEL)
    http = session or requests
    try:
        try:
            res = http.post(
                url,
                headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
                json=build_payload(text),
                timeout=timeout or settings.GEMINI_TIMEOUT_SEC,
            )
        except requests.RequestException as e:
            logger.warning("Gemini request failed: %s", e.__class__.__name__)
            return {"ok": False, "error": "network_error", "detail": str(e)}

        if not res.ok:
            logger.warning("Gemini returned HTTP %s", res.status_code)
            return {"ok": False, "error": f"http_{res.status_code}", "detail": res.text[:500]}

        try:
            data = res.json()
        except ValueError:
            data = None
        raw = "{}"
        try:
            raw = data["candidates"][0]["content"]["parts"][0]["text"] or "{}"
        except (TypeError, KeyError, IndexError):
            pass

        try:
            parsed = json.loads(raw)
        except ValueError:
            return {"ok": False, "error": "bad_json", "raw": raw[:500]}
        if not isinstance(parsed, dict):
            return {"ok": False, "error": "bad_json", "raw": raw[:500]}

        verdict = parsed.get("verdict")
        if verdict not in VERDICTS:
            return {"ok": False, "error": "bad_json", "raw": raw[:500]}

        out = {"ok": True, "verdict": verdict, "explanation": str(parsed.get("explanation") or "")}
        conf = parsed.get("confidence")
        if isinstance(conf, (int, float)) and not isinstance(conf, bool):
            out["confidence"] = max(0.0, min(1.0, float(conf)))
        return out
    except Exception as e:  # the provider must never take the caller down
        logger.exception("Unexpected Gemini client failure")
        return {"ok": False, "error": "exception", "detail": str(e)}
