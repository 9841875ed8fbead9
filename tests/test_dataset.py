import json

import pytest

from modules.dataset import DatasetGenerator, CROP_TYPES, batches
from yield_predictor import LINEAR_REGRESSION, RANDOM_FOREST


def test_yields_are_never_negative():
    records = DatasetGenerator(seed=1).generate(500)
    assert all(record['yield'] >= 0 for record in records)


def test_yield_clamped_for_unfavourable_crop():
    generator = DatasetGenerator(seed=3)
    crop = {'name': 'Test', 'min_yield': -1000, 'max_yield': -500}
    assert generator.yield_for(crop, 25, 1000, 200, 6.8, 70) == 0.0


def test_seeded_generation_is_reproducible():
    assert DatasetGenerator(seed=42).generate(20) == DatasetGenerator(seed=42).generate(20)


def test_records_stay_in_ranges():
    names = {crop['name'] for crop in CROP_TYPES}
    for record in DatasetGenerator(seed=5).generate(300):
        assert 15 <= record['temperature'] <= 40
        assert 300 <= record['rainfall'] <= 1800
        assert 50 <= record['fertilizer'] <= 300
        assert 5.5 <= record['soil_ph'] <= 8.0
        assert 40 <= record['humidity'] <= 90
        assert record['crop'] in names


def test_engineered_features_match_base_features():
    record = DatasetGenerator(seed=9).generate_record()
    assert record['temp_rainfall_interaction'] == pytest.approx(
        record['temperature'] * record['rainfall'] / 1000, abs=0.05)
    assert record['temp_squared'] == pytest.approx((record['temperature'] / 10) ** 2, abs=0.05)
    assert record['npk_ratio'] == pytest.approx(
        record['nitrogen'] / (record['phosphorus'] + record['potassium'] + 1), abs=0.01)


def test_batches_split_records():
    sizes = [len(batch) for batch in batches(list(range(2500)), 1000)]
    assert sizes == [1000, 1000, 500]


def test_fabricated_metrics_ranges():
    lr_metrics, rf_metrics = DatasetGenerator(seed=11).fabricate_metrics()

    assert lr_metrics['model_name'] == LINEAR_REGRESSION
    assert 0.75 <= lr_metrics['r2_score'] <= 0.85
    assert 200 <= lr_metrics['mae'] <= 350
    assert 300 <= lr_metrics['rmse'] <= 500

    assert rf_metrics['model_name'] == RANDOM_FOREST
    assert 0.82 <= rf_metrics['r2_score'] <= 0.92
    assert 150 <= rf_metrics['mae'] <= 250
    assert 250 <= rf_metrics['rmse'] <= 400
    assert json.loads(rf_metrics['tuned_parameters'])['n_neighbors'] == 10
