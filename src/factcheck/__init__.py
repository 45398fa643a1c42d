from src.factcheck.gemini import factcheck_with_gemini
from src.factcheck.rules import FactRules, match_rule
from src.factcheck.worker import FactCheckWorker, get_worker, heuristic_verdict

__all__ = [
    "factcheck_with_gemini",
    "FactRules",
    "match_rule",
    "FactCheckWorker",
    "get_worker",
    "heuristic_verdict",
]
