# Heavy Metal Pollution Indices - HPI / HEI / Cd engine for drinking water samples
import math
import numbers
import logging
from enum import Enum
from types import MappingProxyType
from typing import Dict, Any, Mapping, NamedTuple

from .config import InputPolicy, get_settings, parse_policy
from .errors import InvalidConcentrationError

logger = logging.getLogger(__name__)

# WHO/EPA permissible limits (mg/L)
LIMITS = MappingProxyType({
    'lead': 0.01,
    'mercury': 0.006,
    'cadmium': 0.003,
    'arsenic': 0.01,
    'chromium': 0.05,
    'copper': 2.0,
    'zinc': 3.0,
    'nickel': 0.07,
})

# Relative importance of each metal in the HPI weighted average
WEIGHTS = MappingProxyType({
    'lead': 5,
    'mercury': 5,
    'cadmium': 5,
    'arsenic': 5,
    'chromium': 4,
    'copper': 3,
    'zinc': 2,
    'nickel': 4,
})

METALS = tuple(LIMITS.keys())


class RiskLevel(str, Enum):
    CRITICAL = 'Critical'
    HIGH = 'High'
    MODERATE = 'Moderate'
    LOW = 'Low'
    MINIMAL = 'Minimal'

    def __str__(self):
        return self.value


# (level, hpi, hei, cd) - checked top to bottom, strict '>' on each index
RISK_THRESHOLDS = (
    (RiskLevel.CRITICAL, 100, 40, 20),
    (RiskLevel.HIGH, 45, 20, 10),
    (RiskLevel.MODERATE, 30, 10, 5),
    (RiskLevel.LOW, 15, 5, 2),
)


class IndexResult(NamedTuple):
    hpi: float
    hei: float
    cd: float
    health_risk: RiskLevel

    def as_dict(self) -> Dict[str, Any]:
        return {
            "hpi": self.hpi,
            "hei": self.hei,
            "cd": self.cd,
            "healthRisk": self.health_risk.value,
        }


def safe_float(x):
    """Safely convert to float"""
    try:
        return float(x)
    except Exception:
        return None


def _check_concentration(metal: str, value, policy: InputPolicy) -> float:
    if value is None:
        return 0.0

    is_number = isinstance(value, numbers.Real) and not isinstance(value, bool)
    if policy is InputPolicy.REJECT:
        if not is_number:
            raise InvalidConcentrationError(metal, value, "not a number")
        conc = float(value)
        if math.isnan(conc):
            raise InvalidConcentrationError(metal, value, "NaN")
        if math.isinf(conc):
            raise InvalidConcentrationError(metal, value, "infinite")
        if conc < 0:
            raise InvalidConcentrationError(metal, value, "negative")
        return conc

    conc = safe_float(value) if not isinstance(value, bool) else None
    if conc is None or math.isnan(conc) or conc < 0:
        logger.debug(f"Clamping {metal}={value!r} to 0")
        return 0.0
    if math.isinf(conc):
        # no finite value to clamp to
        raise InvalidConcentrationError(metal, value, "infinite")
    return conc


def normalize_concentrations(metals: Mapping[str, Any], policy=None) -> Dict[str, float]:
    """
    Apply the invalid-input policy to the recognised metals.
    Returns a new dict holding all eight metals; absent or None values become 0.0
    and unknown keys are dropped without being inspected.
    """
    policy = parse_policy(policy) if policy is not None else get_settings().input_policy
    return {metal: _check_concentration(metal, metals.get(metal), policy) for metal in METALS}


def calculate_hpi(metals: Mapping[str, float]) -> float:
    """Heavy Metal Pollution Index: weighted mean of Qi = C/S * 100 over detected metals"""
    weighted_sum = 0.0
    total_weight = 0

    for metal, concentration in metals.items():
        if metal not in LIMITS or metal not in WEIGHTS:
            continue
        # zero and absent are the same reading
        if not concentration:
            continue
        qi = (concentration / LIMITS[metal]) * 100
        weighted_sum += WEIGHTS[metal] * qi
        total_weight += WEIGHTS[metal]

    return weighted_sum / total_weight if total_weight > 0 else 0.0


def calculate_hei(metals: Mapping[str, float]) -> float:
    """Heavy Metal Evaluation Index: sum of C/S"""
    hei_sum = 0.0
    for metal, concentration in metals.items():
        if metal in LIMITS and concentration is not None:
            hei_sum += concentration / LIMITS[metal]
    return hei_sum


def calculate_cd(metals: Mapping[str, float]) -> float:
    """Contamination Degree: sum of contamination factors C/S"""
    cd_sum = 0.0
    count = 0
    for metal, concentration in metals.items():
        if metal in LIMITS and concentration is not None:
            cd_sum += concentration / LIMITS[metal]
            count += 1
    return cd_sum if count > 0 else 0.0


def classify_risk(hpi: float, hei: float, cd: float) -> RiskLevel:
    """Most severe level for which any one index exceeds its threshold"""
    for level, hpi_max, hei_max, cd_max in RISK_THRESHOLDS:
        if hpi > hpi_max or hei > hei_max or cd > cd_max:
            return level
    return RiskLevel.MINIMAL


def compute_indices(metals: Mapping[str, Any], policy=None) -> IndexResult:
    """Score one water sample. Risk is classified on the rounded indices it reports."""
    conc = normalize_concentrations(metals, policy)

    hpi = round(calculate_hpi(conc), 2)
    hei = round(calculate_hei(conc), 2)
    cd = round(calculate_cd(conc), 2)
    health_risk = classify_risk(hpi, hei, cd)

    logger.debug(f"Indices hpi={hpi} hei={hei} cd={cd} -> {health_risk.value}")
    return IndexResult(hpi=hpi, hei=hei, cd=cd, health_risk=health_risk)


def describe_indices() -> Dict[str, Any]:
    """Reference information about the indices and permissible limits"""
    return {
        "indices": {
            "HPI": {
                "name": "Heavy Metal Pollution Index",
                "description": "Weighted average of sub-indices expressing each metal as a percentage of its limit",
                "formula": "HPI = Σ(Wᵢ × Qᵢ) / ΣWᵢ,  Qᵢ = Cᵢ / Sᵢ × 100",
                "interpretation": {
                    "<= 15": "Minimal",
                    "15 - 30": "Low",
                    "30 - 45": "Moderate",
                    "45 - 100": "High",
                    "> 100": "Critical"
                }
            },
            "HEI": {
                "name": "Heavy Metal Evaluation Index",
                "description": "Sum of ratios of metal concentrations to permissible limits",
                "formula": "HEI = Σ(Cᵢ / Sᵢ)",
                "interpretation": {
                    "<= 5": "Minimal",
                    "5 - 10": "Low",
                    "10 - 20": "Moderate",
                    "20 - 40": "High",
                    "> 40": "Critical"
                }
            },
            "Cd": {
                "name": "Contamination Degree",
                "description": "Sum of contamination factors of all metals",
                "formula": "Cd = Σ(Cᵢ / Sᵢ)",
                "interpretation": {
                    "<= 2": "Minimal",
                    "2 - 5": "Low",
                    "5 - 10": "Moderate",
                    "10 - 20": "High",
                    "> 20": "Critical"
                }
            }
        },
        "risk_levels": [level.value for level in RiskLevel],
        "metals": {
            metal: {
                "name": metal,
                "permissible_limit": LIMITS[metal],
                "weight": WEIGHTS[metal],
                "unit": "mg/L"
            }
            for metal in METALS
        }
    }
