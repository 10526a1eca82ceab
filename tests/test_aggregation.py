"""
Tests for batch scoring and the dashboard statistics computed over scored samples.
"""
from datetime import date, datetime

import numpy as np
import pandas as pd
import pytest

from hmpi_backend.aggregation import (
    score_samples, score_frame, summarize, risk_distribution,
    leaderboard, trends, metal_distribution, analyze_batch,
)


@pytest.fixture
def samples():
    return [
        {'location': 'River Intake', 'sample_date': '2024-03-01', 'lead': 0.02},          # hpi 200, Critical
        {'location': 'River Intake', 'sample_date': '2024-03-10', 'lead': 0.01},          # hpi 100, High
        {'location': 'Lake Pump', 'sample_date': '2024-03-10', 'zinc': 0.3},              # hpi 10, Minimal
        {'location': 'Well 7', 'sample_date': date(2024, 3, 9), 'cadmium': 0.0006},      # hpi 20, Low
        {'location': 'Well 7', 'sample_date': '2024-01-02', 'lead': -1},                  # rejected
    ]


@pytest.fixture
def scored(samples):
    results, _ = score_samples(samples)
    return results


NOW = datetime(2024, 3, 15, 12, 0)


def test_score_samples_adds_indices_and_reports_bad_rows(samples):
    results, errors = score_samples(samples)
    assert len(results) == 4
    assert results[0]['hpi'] == 200.0
    assert results[0]['healthRisk'] == 'Critical'
    assert results[0]['location'] == 'River Intake'
    assert errors == [{"row": 5, "error": errors[0]["error"]}]
    assert 'lead' in errors[0]["error"]


def test_score_samples_does_not_mutate_input(samples):
    score_samples(samples)
    assert 'hpi' not in samples[0]


def test_score_samples_clamp_policy_keeps_every_row(samples):
    results, errors = score_samples(samples, policy='clamp')
    assert len(results) == 5
    assert errors == []
    assert results[4]['healthRisk'] == 'Minimal'


def test_score_samples_records_the_clamped_concentrations():
    results, _ = score_samples([{'lead': -1, 'zinc': 'n/a', 'site': 'X'}], policy='clamp')
    assert results[0]['lead'] == 0.0
    assert results[0]['zinc'] == 0.0
    assert results[0]['site'] == 'X'


def test_clamped_batch_never_reports_negative_concentrations():
    payload = analyze_batch([{'lead': 0.02}, {'lead': -1}], policy='clamp')
    assert payload['metals']['avg_lead'] == 0.01
    assert all(r['lead'] >= 0 for r in payload['data'])


def test_score_frame_adds_columns():
    df = pd.DataFrame({
        'site': ['A', 'B', 'C'],
        'lead': [0.02, np.nan, 0.0],
        'zinc': [0.0, 1.5, np.nan],
    })
    out = score_frame(df)
    assert list(out.columns) == ['site', 'lead', 'zinc', 'hpi', 'hei', 'cd', 'healthRisk']
    assert out.loc[0, 'hpi'] == 200.0
    assert out.loc[1, 'hpi'] == 50.0
    assert out.loc[1, 'healthRisk'] == 'High'
    assert out.loc[2, 'healthRisk'] == 'Minimal'
    assert 'hpi' not in df.columns


def test_score_frame_replaces_stale_results():
    df = pd.DataFrame({'lead': [0.01], 'hpi': [999.0], 'healthRisk': ['Low']})
    out = score_frame(df)
    assert list(out.columns).count('hpi') == 1
    assert out.loc[0, 'hpi'] == 100.0


def test_summarize(scored):
    stats = summarize(scored)
    assert stats['total_measurements'] == 4
    assert stats['total_locations'] == 3
    assert stats['hpi'] == {'mean': 82.5, 'median': 60.0, 'max': 200.0, 'min': 10.0}
    assert stats['hei']['max'] == 2.0


def test_summarize_empty():
    assert summarize([]) == {}


def test_risk_distribution_is_zero_filled_and_ordered(scored):
    dist = risk_distribution(scored)
    assert list(dist) == ['Critical', 'High', 'Moderate', 'Low', 'Minimal']
    assert dist == {'Critical': 1, 'High': 1, 'Moderate': 0, 'Low': 1, 'Minimal': 1}


def test_leaderboard_most_polluted(scored):
    board = leaderboard(scored)
    assert [row['name'] for row in board] == ['River Intake', 'Well 7', 'Lake Pump']
    top = board[0]
    assert top['avg_hpi'] == 150.0
    assert top['avg_hei'] == 1.5
    assert top['sample_count'] == 2
    assert top['last_sample'] == '2024-03-10T00:00:00'


def test_leaderboard_cleanest_with_limit(scored):
    board = leaderboard(scored, most_polluted=False, limit=1)
    assert [row['name'] for row in board] == ['Lake Pump']


def test_leaderboard_limit_from_environment(monkeypatch, scored):
    from hmpi_backend.config import get_settings
    monkeypatch.setenv('HMPI_LEADERBOARD_LIMIT', '2')
    get_settings.cache_clear()
    assert len(leaderboard(scored)) == 2


def test_leaderboard_zero_limit_is_respected(scored):
    assert leaderboard(scored, limit=0) == []


def test_leaderboard_skips_unlocated_samples():
    assert leaderboard([{'hpi': 50.0, 'hei': 1.0}]) == []


def test_trends_groups_by_day_within_window(scored):
    rows = trends(scored, days=10, now=NOW)
    assert [r['date'] for r in rows] == ['2024-03-09', '2024-03-10']
    assert rows[1]['sample_count'] == 2
    assert rows[1]['avg_hpi'] == 55.0
    assert rows[0]['avg_cd'] == 0.2


def test_trends_zero_days_keeps_only_samples_at_now(scored):
    rows = trends(scored, days=0, now=datetime(2024, 3, 10))
    assert [r['date'] for r in rows] == ['2024-03-10']
    assert rows[0]['sample_count'] == 2


def test_trends_empty_window(scored):
    assert trends(scored, days=1, now=datetime(2030, 1, 1)) == []


def test_metal_distribution(scored):
    dist = metal_distribution(scored)
    assert dist['avg_lead'] == pytest.approx(0.0075)
    assert dist['max_lead'] == 0.02
    assert dist['max_nickel'] == 0.0
    assert len(dist) == 16


def test_analyze_batch(samples):
    payload = analyze_batch(samples, now=NOW)
    assert payload['success'] is True
    assert [r['hpi'] for r in payload['data']] == [200.0, 100.0, 20.0, 10.0]
    assert len(payload['errors']) == 1
    assert payload['statistics']['total_measurements'] == 4
    assert payload['risk_distribution']['Critical'] == 1
    assert payload['leaderboards']['most_polluted'][0]['name'] == 'River Intake'
    assert payload['leaderboards']['cleanest'][0]['name'] == 'Lake Pump'
    assert len(payload['trends']) == 3
    assert 'timestamp' in payload


def test_analyze_batch_accepts_generators():
    payload = analyze_batch(({'lead': 0.01 * i} for i in range(3)))
    assert payload['statistics']['total_measurements'] == 3
    assert payload['leaderboards']['most_polluted'] == []
