"""
Loaders for executor output and segment configuration files
"""

from pathlib import Path

from src.backtester.schemas import SegmentConfig, StrategyEvaluationResult
from src.utils.logger import get_logger

logger = get_logger(__name__)


def load_evaluation_result(path: str | Path) -> StrategyEvaluationResult:
    """
    Parse an executor output JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the content does not match the schema
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Evaluation result not found: {path}")

    result = StrategyEvaluationResult.model_validate_json(path.read_text(encoding='utf-8'))
    logger.debug(
        f"Loaded {path.name}: "
        f"{len(result.executor_evaluation_results or [])} executors, "
        f"{len(result.segment_details or [])} segments"
    )
    return result


def load_segment_config(path: str | Path) -> SegmentConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Segment config not found: {path}")

    return SegmentConfig.model_validate_json(path.read_text(encoding='utf-8'))
