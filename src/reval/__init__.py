"""
reval - Benchmark functions across datasets and variants.

Sweep model and prompt configurations over a dataset, score every
result against its target, and compare runs.
"""

from reval.config import RevalConfig, define_config
from reval.eval import run_eval, run_eval_async
from reval.score import score, score_detailed

__version__ = "0.1.0"
__all__ = [
    "RevalConfig",
    "__version__",
    "define_config",
    "run_eval",
    "run_eval_async",
    "score",
    "score_detailed",
]
