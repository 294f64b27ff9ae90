"""
N-gram Language Model Scoring API

A Flask application for training a Witten-Bell model in the background
and querying n-gram probabilities and perplexities over JSON.
"""

import logging
import threading
from typing import Dict, Optional

from flask import Flask, jsonify, request

from .config import ModelConfig
from .corpus import preprocess_text
from .errors import LanguageModelError
from .model import LangModel


logger = logging.getLogger(__name__)

app = Flask(__name__)

# Global state
model: Optional[LangModel] = None
training_status: Dict = {
    'is_training': False,
    'progress': 0,
    'stage': 'idle',
    'message': '',
    'error': None,
    'stats': None
}
training_lock = threading.Lock()


def set_model(new_model: Optional[LangModel]) -> None:
    """Install a trained model to serve queries."""
    global model
    model = new_model


def train_model_async(config: ModelConfig):
    """Train model in background thread."""
    try:
        with training_lock:
            training_status['stage'] = 'training'
            training_status['message'] = 'Training model...'

        def progress_callback(current, total, stage=""):
            with training_lock:
                if total:
                    training_status['progress'] = int(current / total * 100)
                training_status['stage'] = stage
                training_status['message'] = f'{stage}: {current:,} sentences'

        new_model = LangModel.from_config(config, progress_callback=progress_callback)
        set_model(new_model)

        with training_lock:
            training_status['progress'] = 100
            training_status['stage'] = 'complete'
            training_status['message'] = 'Training complete!'
            training_status['stats'] = new_model.training_stats
            training_status['is_training'] = False

    except Exception as e:
        logger.exception("Background training failed")
        with training_lock:
            training_status['error'] = str(e)
            training_status['is_training'] = False
            training_status['stage'] = 'error'
            training_status['message'] = f'Error: {e}'


@app.route('/api/train', methods=['POST'])
def api_train():
    """Start model training."""
    data = request.get_json(silent=True) or {}

    try:
        config = ModelConfig.from_params(data)
    except LanguageModelError as e:
        return jsonify({'error': str(e)}), 400

    with training_lock:
        if training_status['is_training']:
            return jsonify({'error': 'Training already in progress'}), 409
        training_status.update({
            'is_training': True,
            'progress': 0,
            'stage': 'starting',
            'message': 'Starting training...',
            'error': None,
            'stats': None
        })

    thread = threading.Thread(target=train_model_async, args=(config,))
    thread.daemon = True
    thread.start()

    return jsonify({'message': 'Training started'})


@app.route('/api/status')
def api_status():
    """Get training status."""
    with training_lock:
        return jsonify(dict(training_status))


@app.route('/api/model/info')
def api_model_info():
    """Get model information."""
    if model is None:
        return jsonify({'error': 'No model trained'}), 400

    return jsonify({
        'n': model.n,
        'vocab_size': model.vocab.size(),
        'is_frozen': model.is_frozen,
        'stats': model.training_stats
    })


@app.route('/api/probability')
def api_probability():
    """Score one n-gram given as space-separated tokens."""
    if model is None:
        return jsonify({'error': 'No model trained'}), 400

    tokens = request.args.get('ngram', '').split()

    try:
        probability = model.score_tokens(tokens)
    except LanguageModelError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'ngram': tokens,
        'probability': probability
    })


@app.route('/api/perplexity', methods=['POST'])
def api_perplexity():
    """Calculate perplexity for given sentences."""
    if model is None:
        return jsonify({'error': 'No model trained'}), 400

    data = request.get_json(silent=True) or {}
    sentences = data.get('sentences', [])
    lowercase = bool(data.get('lowercase', False))

    if not sentences:
        return jsonify({'error': 'No sentences provided'}), 400

    parsed = [preprocess_text(sent, lowercase=lowercase) for sent in sentences]

    try:
        perplexity = model.perplexity(parsed)
    except LanguageModelError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'perplexity': perplexity,
        'num_sentences': len(parsed)
    })
