# Batch scoring and dashboard statistics over scored water samples
import logging
from datetime import datetime
from typing import Dict, Any, Iterable, List, Mapping, Tuple

import numpy as np
import pandas as pd

from .config import get_settings
from .errors import HMPIError
from .indices import METALS, RiskLevel, compute_indices, normalize_concentrations, safe_float

logger = logging.getLogger(__name__)

INDEX_KEYS = ('hpi', 'hei', 'cd')
RESULT_COLUMNS = ['hpi', 'hei', 'cd', 'healthRisk']


def _parse_date(value) -> pd.Timestamp:
    """Parse a date/datetime/ISO string into a naive Timestamp, NaT when unusable"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return pd.NaT
    ts = pd.to_datetime(value, errors='coerce')
    if pd.isnull(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def _round(value, ndigits: int = 3):
    if value is None or pd.isnull(value):
        return None
    return round(float(value), ndigits)


def score_samples(samples: Iterable[Mapping[str, Any]], policy=None) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Map phase: score every sample on its own.
    Returns (scored, errors). Each scored record is a copy of the sample with
    its eight metals replaced by the concentrations actually scored and
    hpi/hei/cd/healthRisk added; errors holds {"row", "error"} for samples the
    engine refused, with 1-based row numbers.
    """
    scored: List[Dict[str, Any]] = []
    errors: List[Dict[str, Any]] = []

    for row, sample in enumerate(samples, start=1):
        try:
            conc = normalize_concentrations(sample, policy)
            result = compute_indices(conc, policy)
        except HMPIError as e:
            logger.warning(f"Skipping sample {row}: {e}")
            errors.append({"row": row, "error": str(e)})
            continue
        record = dict(sample)
        record.update(conc)
        record.update(result.as_dict())
        scored.append(record)

    return scored, errors


def score_frame(df: pd.DataFrame, policy=None) -> pd.DataFrame:
    """
    Score each row of a DataFrame with metal columns.
    NaN cells count as absent. Adds hpi, hei, cd and healthRisk columns,
    replacing any that already exist. Invalid rows raise.
    """
    df = df.drop(columns=RESULT_COLUMNS, errors='ignore')
    metal_columns = [m for m in METALS if m in df.columns]

    results = []
    for rec in df[metal_columns].to_dict(orient='records'):
        metals = {k: (None if pd.isnull(v) else v) for k, v in rec.items()}
        results.append(compute_indices(metals, policy).as_dict())

    scored = pd.DataFrame(results, columns=RESULT_COLUMNS, index=df.index)
    return pd.concat([df, scored], axis=1)


def summarize(results: List[Mapping[str, Any]]) -> Dict[str, Any]:
    """Reduce phase: count samples and locations, mean/median/min/max of each index"""
    if not results:
        return {}

    stats: Dict[str, Any] = {
        "total_measurements": len(results),
        "total_locations": len({r.get('location') for r in results if r.get('location')}),
    }

    for key in INDEX_KEYS:
        values = [safe_float(r.get(key)) for r in results]
        values = [v for v in values if v is not None and not np.isnan(v)]
        if not values:
            stats[key] = None
            continue
        stats[key] = {
            'mean': round(float(np.mean(values)), 3),
            'median': round(float(np.median(values)), 3),
            'max': round(float(np.max(values)), 3),
            'min': round(float(np.min(values)), 3)
        }

    return stats


def risk_distribution(results: List[Mapping[str, Any]]) -> Dict[str, int]:
    counts = {level.value: 0 for level in RiskLevel}
    for r in results:
        risk = r.get('healthRisk')
        if risk is None:
            continue
        if isinstance(risk, RiskLevel):
            risk = risk.value
        if risk in counts:
            counts[risk] += 1
    return counts


def leaderboard(results: List[Mapping[str, Any]], most_polluted: bool = True, limit: int = None) -> List[Dict[str, Any]]:
    """Locations ranked by average HPI, most polluted first unless most_polluted is False"""
    if limit is None:
        limit = get_settings().leaderboard_limit

    rows = []
    for r in results:
        hpi = safe_float(r.get('hpi'))
        if not r.get('location') or hpi is None:
            continue
        rows.append({
            'location': str(r['location']),
            'hpi': hpi,
            'hei': safe_float(r.get('hei')),
            'sample_date': _parse_date(r.get('sample_date')),
        })
    if not rows:
        return []

    df = pd.DataFrame(rows)
    df[['hpi', 'hei']] = df[['hpi', 'hei']].astype(float)
    grouped = df.groupby('location', sort=False).agg(
        avg_hpi=('hpi', 'mean'),
        avg_hei=('hei', 'mean'),
        last_sample=('sample_date', 'max'),
        sample_count=('hpi', 'size'),
    ).reset_index()
    grouped = grouped.sort_values('avg_hpi', ascending=not most_polluted, kind='mergesort').head(limit)

    return [
        {
            "name": g['location'],
            "avg_hpi": _round(g['avg_hpi']),
            "avg_hei": _round(g['avg_hei']),
            "last_sample": g['last_sample'].isoformat() if pd.notnull(g['last_sample']) else None,
            "sample_count": int(g['sample_count'])
        }
        for g in grouped.to_dict(orient='records')
    ]


def trends(results: List[Mapping[str, Any]], days: int = None, now=None) -> List[Dict[str, Any]]:
    """Daily average indices for samples taken in the last `days` days"""
    if days is None:
        days = get_settings().trend_days
    now = _parse_date(now) if now is not None else pd.Timestamp.now()
    start = now - pd.Timedelta(days=days)

    rows = []
    for r in results:
        ts = _parse_date(r.get('sample_date'))
        if pd.isnull(ts) or ts < start:
            continue
        rows.append({
            'date': ts.strftime('%Y-%m-%d'),
            'hpi': safe_float(r.get('hpi')),
            'hei': safe_float(r.get('hei')),
            'cd': safe_float(r.get('cd')),
        })
    if not rows:
        return []

    df = pd.DataFrame(rows)
    df[list(INDEX_KEYS)] = df[list(INDEX_KEYS)].astype(float)
    daily = df.groupby('date').agg(
        avg_hpi=('hpi', 'mean'),
        avg_hei=('hei', 'mean'),
        avg_cd=('cd', 'mean'),
        sample_count=('date', 'size'),
    ).reset_index().sort_values('date')

    return [
        {
            "date": d['date'],
            "avg_hpi": _round(d['avg_hpi']),
            "avg_hei": _round(d['avg_hei']),
            "avg_cd": _round(d['avg_cd']),
            "sample_count": int(d['sample_count'])
        }
        for d in daily.to_dict(orient='records')
    ]


def metal_distribution(results: List[Mapping[str, Any]]) -> Dict[str, float]:
    """Average and maximum concentration of each metal; absent readings count as 0"""
    if not results:
        return {}

    distribution: Dict[str, float] = {}
    for metal in METALS:
        values = [safe_float(r.get(metal)) or 0.0 for r in results]
        distribution[f'avg_{metal}'] = round(float(np.mean(values)), 6)
        distribution[f'max_{metal}'] = round(float(np.max(values)), 6)
    return distribution


def analyze_batch(samples: Iterable[Mapping[str, Any]], policy=None, now=None) -> Dict[str, Any]:
    """Score a batch of samples, then compute every dashboard statistic over the scored set"""
    logger.info("Starting batch analysis")

    scored, errors = score_samples(samples, policy)
    scored.sort(key=lambda r: r['hpi'], reverse=True)

    logger.info(f"Scored {len(scored)} samples, {len(errors)} rejected")
    return {
        "success": True,
        "data": scored,
        "errors": errors,
        "statistics": summarize(scored),
        "risk_distribution": risk_distribution(scored),
        "leaderboards": {
            "most_polluted": leaderboard(scored, most_polluted=True),
            "cleanest": leaderboard(scored, most_polluted=False)
        },
        "trends": trends(scored, now=now),
        "metals": metal_distribution(scored),
        "timestamp": datetime.now().isoformat()
    }
