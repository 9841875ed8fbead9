class AnalyticsEngine:
    """Filtering and summary numbers for the prediction history list"""

    def filter_history(self, predictions, search=None, crop=None, model=None):
        filtered = list(predictions)

        # Search filter (case-insensitive substring on the crop)
        if search:
            term = search.lower()
            filtered = [p for p in filtered if term in p['predicted_crop'].lower()]

        if crop and crop != 'all':
            filtered = [p for p in filtered if p['predicted_crop'] == crop]

        if model and model != 'all':
            filtered = [p for p in filtered if p['best_model'] == model]

        return filtered

    def summarize(self, predictions):
        if not predictions:
            return {
                'total_predictions': 0,
                'crops_analyzed': 0,
                'best_yield': 0,
                'models_used': 0,
            }

        best_yield = max(max(p['predicted_yield_lr'], p['predicted_yield_rf']) for p in predictions)
        return {
            'total_predictions': len(predictions),
            'crops_analyzed': len({p['predicted_crop'] for p in predictions}),
            'best_yield': round(best_yield, 1),
            'models_used': len({p['best_model'] for p in predictions}),
        }

    def filter_options(self, predictions):
        """Distinct crops and models, in order of first appearance"""
        crops = list(dict.fromkeys(p['predicted_crop'] for p in predictions))
        models = list(dict.fromkeys(p['best_model'] for p in predictions))
        return {'crops': crops, 'models': models}
