import os

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ.setdefault('DATASET_SEED', '7')

import pytest

from app import app, db


@pytest.fixture
def client():
    app.config['TESTING'] = True
    app.config['DATASET_SIZE'] = 60
    app.config['DATASET_BATCH_SIZE'] = 25
    with app.app_context():
        db.drop_all()
        db.create_all()
    app.db_initialized = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def sample_input():
    return {
        'temperature': 20,
        'rainfall': 1000,
        'fertilizer': 100,
        'soil_ph': 6.5,
        'humidity': 60,
        'nitrogen': 50,
        'phosphorus': 20,
        'potassium': 29,
    }
