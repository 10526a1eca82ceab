# Heavy Metal Pollution Index backend - water sample scoring and analytics
from .errors import HMPIError, InvalidConcentrationError, ConfigurationError
from .config import InputPolicy, Settings, get_settings, configure_logging
from .indices import (
    LIMITS, WEIGHTS, METALS, RISK_THRESHOLDS,
    RiskLevel, IndexResult,
    calculate_hpi, calculate_hei, calculate_cd, classify_risk,
    compute_indices, normalize_concentrations, describe_indices,
)
from .aggregation import (
    score_samples, score_frame, summarize, risk_distribution,
    leaderboard, trends, metal_distribution, analyze_batch,
)

__version__ = "1.0.0"
