import json

import numpy as np

from yield_predictor import engineer_features, LINEAR_REGRESSION, RANDOM_FOREST

# Crop types with their typical yield ranges (kg/ha)
CROP_TYPES = [
    {'name': 'Wheat', 'min_yield': 2000, 'max_yield': 5000},
    {'name': 'Rice', 'min_yield': 3000, 'max_yield': 7000},
    {'name': 'Corn', 'min_yield': 4000, 'max_yield': 9000},
    {'name': 'Cotton', 'min_yield': 1000, 'max_yield': 3000},
    {'name': 'Sugarcane', 'min_yield': 40000, 'max_yield': 80000},
    {'name': 'Soybean', 'min_yield': 1500, 'max_yield': 4000},
    {'name': 'Barley', 'min_yield': 2000, 'max_yield': 5500},
]


class DatasetGenerator:
    def __init__(self, seed=None):
        self.rng = np.random.default_rng(seed)

    def _uniform(self, low, high):
        return float(self.rng.uniform(low, high))

    def yield_for(self, crop, temperature, rainfall, fertilizer, soil_ph, humidity):
        """
        Yield inside the crop's range, scaled by how favourable the conditions are.
        Never negative.
        """
        temp_factor = 1 - abs(temperature - 25) / 40
        rain_factor = min(rainfall / 1000, 1.5)
        fert_factor = min(fertilizer / 200, 1.3)
        ph_factor = 1 - abs(soil_ph - 6.8) / 3
        humidity_factor = min(humidity / 70, 1.2)

        base_factor = (temp_factor + rain_factor + fert_factor + ph_factor + humidity_factor) / 5
        random_variation = self._uniform(0.8, 1.2)
        yield_value = crop['min_yield'] + (crop['max_yield'] - crop['min_yield']) * base_factor * random_variation
        return max(0.0, yield_value)

    def generate_record(self):
        crop = CROP_TYPES[int(self.rng.integers(len(CROP_TYPES)))]

        temperature = self._uniform(15, 40)
        rainfall = self._uniform(300, 1800)
        fertilizer = self._uniform(50, 300)
        soil_ph = self._uniform(5.5, 8.0)
        humidity = self._uniform(40, 90)
        nitrogen = self._uniform(0, 140)
        phosphorus = self._uniform(5, 145)
        potassium = self._uniform(5, 205)

        record = {
            'temperature': temperature,
            'rainfall': rainfall,
            'fertilizer': fertilizer,
            'soil_ph': soil_ph,
            'humidity': humidity,
            'nitrogen': nitrogen,
            'phosphorus': phosphorus,
            'potassium': potassium,
        }
        record.update(engineer_features(temperature, rainfall, fertilizer, soil_ph,
                                        nitrogen, phosphorus, potassium))
        record = {name: round(value, 2) for name, value in record.items()}
        # npk_ratio is stored with three decimals
        record['npk_ratio'] = round(nitrogen / (phosphorus + potassium + 1), 3)

        record['crop'] = crop['name']
        record['yield'] = round(self.yield_for(crop, temperature, rainfall, fertilizer, soil_ph, humidity), 2)
        return record

    def generate(self, count):
        return [self.generate_record() for _ in range(count)]

    def fabricate_metrics(self):
        """No model is evaluated, the scores are drawn around plausible values"""
        lr_metrics = {
            'model_name': LINEAR_REGRESSION,
            'r2_score': 0.75 + self._uniform(0, 1) * 0.1,
            'mae': 200 + self._uniform(0, 1) * 150,
            'rmse': 300 + self._uniform(0, 1) * 200,
            'evaluation_method': 'holdout 80/20',
            'tuned_parameters': json.dumps({'fit_intercept': True}),
        }
        rf_metrics = {
            'model_name': RANDOM_FOREST,
            'r2_score': 0.82 + self._uniform(0, 1) * 0.1,
            'mae': 150 + self._uniform(0, 1) * 100,
            'rmse': 250 + self._uniform(0, 1) * 150,
            'evaluation_method': 'holdout 80/20',
            'tuned_parameters': json.dumps({'n_neighbors': 10, 'weights': 'distance'}),
        }
        return lr_metrics, rf_metrics


def batches(records, batch_size):
    for start in range(0, len(records), batch_size):
        yield records[start:start + batch_size]
