import pytest

import logging
import os
import subprocess
import sys

from yield_predictor import build_feature_vector, predict_linear_regression, BASE_FEATURES, FALLBACK_MULTIPLIER


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_generate_dataset(client):
    response = client.post('/api/generate-dataset')
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['records_created'] == 60
    assert body['lr_metrics']['model_name'] == 'Linear Regression'
    assert body['rf_metrics']['model_name'] == 'Random Forest'

    metrics = client.get('/api/metrics').get_json()['metrics']
    assert {m['model_name'] for m in metrics} == {'Linear Regression', 'Random Forest'}


def test_predict_without_dataset_falls_back(client, sample_input):
    response = client.post('/api/predict-yield', json=sample_input)
    assert response.status_code == 200
    body = response.get_json()

    features = build_feature_vector(sample_input)
    assert body['predicted_yield_lr'] == predict_linear_regression(features)
    base = {name: features[name] for name in BASE_FEATURES}
    assert body['predicted_yield_rf'] == predict_linear_regression(base) * FALLBACK_MULTIPLIER
    assert body['predicted_crop'] == 'Barley'
    assert body['best_model'] == 'Linear Regression'
    assert body['lr_metrics'] is None
    assert body['feature_importances']['rainfall'] == 0.25


def test_predict_after_generation(client, sample_input):
    client.post('/api/generate-dataset')
    body = client.post('/api/predict-yield', json=sample_input).get_json()

    assert body['predicted_yield_rf'] > 0
    rf_wins = body['rf_metrics']['r2_score'] > body['lr_metrics']['r2_score']
    assert body['best_model'] == ('Random Forest' if rf_wins else 'Linear Regression')


def test_prediction_stores_raw_inputs(client, sample_input):
    sample_input.update({'temperature': 55, 'potassium': None})
    client.post('/api/predict-yield', json=sample_input)

    latest = client.get('/api/predictions/latest').get_json()
    assert latest['temperature'] == 55
    assert latest['potassium'] is None
    assert latest['predicted_crop'] == 'Corn'
    assert latest['feature_importances']['temperature'] == 0.20


def test_latest_prediction_missing(client):
    assert client.get('/api/predictions/latest').status_code == 404


def test_history_filters(client, sample_input):
    client.post('/api/predict-yield', json=sample_input)
    client.post('/api/predict-yield', json=dict(sample_input, temperature=32, rainfall=1300))

    body = client.get('/api/predictions').get_json()
    assert body['total'] == 2
    assert body['stats']['crops_analyzed'] == 2
    # newest first
    assert body['predictions'][0]['predicted_crop'] == 'Rice'

    filtered = client.get('/api/predictions?crop=Barley').get_json()
    assert [p['predicted_crop'] for p in filtered['predictions']] == ['Barley']

    searched = client.get('/api/predictions?search=ric').get_json()
    assert len(searched['predictions']) == 1


def test_delete_prediction(client, sample_input):
    prediction_id = client.post('/api/predict-yield', json=sample_input).get_json()['id']

    response = client.delete(f'/api/predictions/{prediction_id}')
    assert response.status_code == 200
    assert client.get('/api/predictions').get_json()['total'] == 0

    assert client.delete(f'/api/predictions/{prediction_id}').status_code == 404


@pytest.mark.parametrize('payload', [
    {'temperature': 20},
    {'temperature': 'warm', 'rainfall': 800, 'fertilizer': 100, 'soil_ph': 6.5, 'humidity': 60},
])
def test_malformed_input_returns_500(client, payload):
    response = client.post('/api/predict-yield', json=payload)
    assert response.status_code == 500
    assert 'error' in response.get_json()


def test_wsgi_import_keeps_logging_config():
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    env = dict(os.environ, LOG_LEVEL='INFO', DATABASE_URL='sqlite://')
    script = (
        "import logging, wsgi; "
        "root = logging.getLogger(); "
        "print(root.level); "
        "print(root.handlers[0].formatter._fmt)"
    )
    result = subprocess.run([sys.executable, '-c', script], cwd=root, env=env,
                            capture_output=True, text=True, check=True)
    level, fmt = result.stdout.strip().splitlines()
    assert int(level) == logging.INFO
    assert fmt == '%(asctime)s - %(levelname)s: %(message)s'
