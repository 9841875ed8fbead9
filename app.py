from flask import Flask, request, jsonify
from flask_sqlalchemy import SQLAlchemy
from datetime import datetime
import json
import logging
import os
from dotenv import load_dotenv

from yield_predictor import (
    build_feature_vector, predict_linear_regression, predict_random_forest,
    determine_best_crop, choose_best_model, simulated_feature_importances,
    LINEAR_REGRESSION, RANDOM_FOREST,
)

# Load environment variables
load_dotenv()

# ---------------- Logging ----------------
logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    format='%(asctime)s - %(levelname)s: %(message)s'
)

# ---------------- Flask Setup ----------------
app = Flask(__name__)
app.config['SECRET_KEY'] = os.environ.get('SESSION_SECRET', 'crop-yield-secret-key-2026')
app.config['DATASET_SIZE'] = int(os.environ.get('DATASET_SIZE', 5000))
app.config['DATASET_BATCH_SIZE'] = int(os.environ.get('DATASET_BATCH_SIZE', 1000))
app.config['TRAINING_SAMPLE_LIMIT'] = int(os.environ.get('TRAINING_SAMPLE_LIMIT', 500))
app.config['DATASET_SEED'] = int(os.environ['DATASET_SEED']) if os.environ.get('DATASET_SEED') else None

# ---------------- Database Setup ----------------
database_url = os.environ.get('DATABASE_URL')
if not database_url:
    db_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'database', 'crop_yield.db')
    os.makedirs(os.path.dirname(db_path), exist_ok=True)
    database_url = f'sqlite:///{db_path}'
app.config['SQLALCHEMY_DATABASE_URI'] = database_url
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
db = SQLAlchemy(app)

# ---------------- Global Engine Holders ----------------
_analytics_engine = None

def get_analytics_engine():
    global _analytics_engine
    if _analytics_engine is None:
        from modules.analytics import AnalyticsEngine
        _analytics_engine = AnalyticsEngine()
        logging.info("Analytics Engine initialized")
    return _analytics_engine

def get_dataset_generator():
    from modules.dataset import DatasetGenerator
    return DatasetGenerator(seed=app.config['DATASET_SEED'])

# ---------------- SQLAlchemy Models ----------------
class CropRecord(db.Model):
    __tablename__ = 'crops_dataset'
    id = db.Column(db.Integer, primary_key=True)
    temperature = db.Column(db.Float, nullable=False)
    rainfall = db.Column(db.Float, nullable=False)
    fertilizer = db.Column(db.Float, nullable=False)
    soil_ph = db.Column(db.Float, nullable=False)
    humidity = db.Column(db.Float, nullable=False)
    nitrogen = db.Column(db.Float)
    phosphorus = db.Column(db.Float)
    potassium = db.Column(db.Float)

    # Engineered features
    temp_rainfall_interaction = db.Column(db.Float)
    ph_fertilizer_interaction = db.Column(db.Float)
    temp_squared = db.Column(db.Float)
    npk_ratio = db.Column(db.Float)

    crop = db.Column(db.String(50), nullable=False, index=True)
    yield_value = db.Column('yield', db.Float, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def from_dict(cls, record):
        values = dict(record)
        values['yield_value'] = values.pop('yield')
        return cls(**values)

    def to_dict(self):
        return {
            'id': self.id,
            'temperature': self.temperature,
            'rainfall': self.rainfall,
            'fertilizer': self.fertilizer,
            'soil_ph': self.soil_ph,
            'humidity': self.humidity,
            'nitrogen': self.nitrogen,
            'phosphorus': self.phosphorus,
            'potassium': self.potassium,
            'temp_rainfall_interaction': self.temp_rainfall_interaction,
            'ph_fertilizer_interaction': self.ph_fertilizer_interaction,
            'temp_squared': self.temp_squared,
            'npk_ratio': self.npk_ratio,
            'crop': self.crop,
            'yield': self.yield_value,
        }

class Prediction(db.Model):
    __tablename__ = 'predictions'
    id = db.Column(db.Integer, primary_key=True)
    temperature = db.Column(db.Float, nullable=False)
    rainfall = db.Column(db.Float, nullable=False)
    fertilizer = db.Column(db.Float, nullable=False)
    soil_ph = db.Column(db.Float, nullable=False)
    humidity = db.Column(db.Float, nullable=False)
    nitrogen = db.Column(db.Float)
    phosphorus = db.Column(db.Float)
    potassium = db.Column(db.Float)
    predicted_crop = db.Column(db.String(50), nullable=False)
    predicted_yield_lr = db.Column(db.Float, nullable=False)
    predicted_yield_rf = db.Column(db.Float, nullable=False)
    best_model = db.Column(db.String(50), nullable=False)
    feature_importances = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'temperature': self.temperature,
            'rainfall': self.rainfall,
            'fertilizer': self.fertilizer,
            'soil_ph': self.soil_ph,
            'humidity': self.humidity,
            'nitrogen': self.nitrogen,
            'phosphorus': self.phosphorus,
            'potassium': self.potassium,
            'predicted_crop': self.predicted_crop,
            'predicted_yield_lr': self.predicted_yield_lr,
            'predicted_yield_rf': self.predicted_yield_rf,
            'best_model': self.best_model,
            'feature_importances': json.loads(self.feature_importances) if self.feature_importances else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

class ModelMetrics(db.Model):
    __tablename__ = 'model_metrics'
    id = db.Column(db.Integer, primary_key=True)
    model_name = db.Column(db.String(50), nullable=False, index=True)
    r2_score = db.Column(db.Float, nullable=False)
    mae = db.Column(db.Float, nullable=False)
    rmse = db.Column(db.Float, nullable=False)
    evaluation_method = db.Column(db.String(100))
    tuned_parameters = db.Column(db.Text)
    training_date = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'model_name': self.model_name,
            'r2_score': self.r2_score,
            'mae': self.mae,
            'rmse': self.rmse,
            'evaluation_method': self.evaluation_method,
            'tuned_parameters': self.tuned_parameters,
            'training_date': self.training_date.isoformat() if self.training_date else None,
        }

# Initialize DB on first request instead of startup
@app.before_request
def init_db():
    if not hasattr(app, 'db_initialized'):
        db.create_all()
        app.db_initialized = True
        logging.info("Database initialized")

# ---------------- Helpers ----------------
def latest_metrics(model_name):
    metrics = (ModelMetrics.query.filter_by(model_name=model_name)
               .order_by(ModelMetrics.training_date.desc(), ModelMetrics.id.desc())
               .first())
    return metrics.to_dict() if metrics else None

def history_query():
    return Prediction.query.order_by(Prediction.created_at.desc(), Prediction.id.desc())

def _optional_float(value):
    if value in (None, ''):
        return None
    return float(value)

def error_response(e):
    db.session.rollback()
    logging.error(f"Request to {request.path} failed: {e}")
    return jsonify({'error': str(e)}), 500

# ---------------- Routes ----------------
@app.route('/health')
def health():
    """Health check endpoint for deployment platforms"""
    return jsonify({"status": "healthy", "service": "CropYield-Predictor"}), 200

@app.route('/api/generate-dataset', methods=['POST'])
def generate_dataset():
    try:
        logging.info("Starting dataset generation...")
        generator = get_dataset_generator()
        records = generator.generate(app.config['DATASET_SIZE'])
        logging.info(f"Generated {len(records)} records, inserting into database...")

        from modules.dataset import batches
        for number, batch in enumerate(batches(records, app.config['DATASET_BATCH_SIZE']), start=1):
            db.session.add_all([CropRecord.from_dict(record) for record in batch])
            db.session.commit()
            logging.info(f"Inserted batch {number}")

        lr_metrics, rf_metrics = generator.fabricate_metrics()
        db.session.add_all([ModelMetrics(**lr_metrics), ModelMetrics(**rf_metrics)])
        db.session.commit()
        logging.info("Dataset generation complete!")

        return jsonify({
            'success': True,
            'records_created': len(records),
            'lr_metrics': lr_metrics,
            'rf_metrics': rf_metrics,
        })
    except Exception as e:
        return error_response(e)

@app.route('/api/predict-yield', methods=['POST'])
def predict_yield():
    try:
        data = request.get_json()
        logging.info(f"Predicting yield with features: {data}")

        features = build_feature_vector(data)

        training_data = [record.to_dict() for record in
                         CropRecord.query.limit(app.config['TRAINING_SAMPLE_LIMIT']).all()]

        lr_yield = predict_linear_regression(features)
        rf_yield = predict_random_forest(features, training_data)
        predicted_crop = determine_best_crop(features['temperature'], features['rainfall'])

        lr_metrics = latest_metrics(LINEAR_REGRESSION)
        rf_metrics = latest_metrics(RANDOM_FOREST)
        best_model = choose_best_model(lr_metrics, rf_metrics)

        importances = simulated_feature_importances()

        # Raw inputs are stored, not the capped values
        new_pred = Prediction(
            temperature=float(data['temperature']), rainfall=float(data['rainfall']),
            fertilizer=float(data['fertilizer']), soil_ph=float(data['soil_ph']),
            humidity=float(data['humidity']),
            nitrogen=_optional_float(data.get('nitrogen')),
            phosphorus=_optional_float(data.get('phosphorus')),
            potassium=_optional_float(data.get('potassium')),
            predicted_crop=predicted_crop,
            predicted_yield_lr=lr_yield,
            predicted_yield_rf=rf_yield,
            best_model=best_model,
            feature_importances=json.dumps(importances)
        )
        db.session.add(new_pred)
        db.session.commit()
        logging.info("Prediction stored successfully")

        return jsonify({
            'id': new_pred.id,
            'predicted_crop': predicted_crop,
            'predicted_yield_lr': lr_yield,
            'predicted_yield_rf': rf_yield,
            'best_model': best_model,
            'lr_metrics': lr_metrics,
            'rf_metrics': rf_metrics,
            'feature_importances': importances,
        })
    except Exception as e:
        return error_response(e)

@app.route('/api/predictions', methods=['GET'])
def list_predictions():
    try:
        engine = get_analytics_engine()
        predictions = [p.to_dict() for p in history_query().all()]
        filtered = engine.filter_history(
            predictions,
            search=request.args.get('search'),
            crop=request.args.get('crop'),
            model=request.args.get('model')
        )
        return jsonify({
            'predictions': filtered,
            'total': len(predictions),
            'stats': engine.summarize(predictions),
            'filters': engine.filter_options(predictions),
        })
    except Exception as e:
        return error_response(e)

@app.route('/api/predictions/latest', methods=['GET'])
def latest_prediction():
    try:
        prediction = history_query().first()
        if prediction is None:
            return jsonify({'error': 'No predictions yet'}), 404
        return jsonify(prediction.to_dict())
    except Exception as e:
        return error_response(e)

@app.route('/api/predictions/<int:prediction_id>', methods=['DELETE'])
def delete_prediction(prediction_id):
    try:
        prediction = db.session.get(Prediction, prediction_id)
        if prediction is None:
            return jsonify({'error': f'Prediction {prediction_id} not found'}), 404
        db.session.delete(prediction)
        db.session.commit()
        logging.info(f"Deleted prediction {prediction_id}")
        return jsonify({'success': True, 'id': prediction_id})
    except Exception as e:
        return error_response(e)

@app.route('/api/metrics', methods=['GET'])
def model_metrics():
    try:
        metrics = (ModelMetrics.query
                   .order_by(ModelMetrics.training_date.desc(), ModelMetrics.id.desc())
                   .limit(2).all())
        return jsonify({'metrics': [m.to_dict() for m in metrics]})
    except Exception as e:
        return error_response(e)

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port)
