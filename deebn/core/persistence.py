"""Save models to disk as tagged JSON text and load them back.

A saved model is a JSON object holding a ``type`` tag, which selects the
decoder on load, and the fields of the model: matrices and vectors as
nested lists, layer sizes and class count as numbers.
"""

import json
import os

from deebn.core.config import Config
from deebn.models.boltzmann.dbn import CDBN, DBN
from deebn.models.boltzmann.rbm import CRBM, RBM
from deebn.models.feedforward.dnn import DNN

# Subclasses come first, the first matching class gives the tag.
MODEL_TAGS = [
    ('deebn.rbm/CRBM', CRBM),
    ('deebn.rbm/RBM', RBM),
    ('deebn.dbn/CDBN', CDBN),
    ('deebn.dbn/DBN', DBN),
    ('deebn.dnn/DNN', DNN),
]

DECODERS = {tag: cls.from_dict for tag, cls in MODEL_TAGS}


def model_tag(model):
    """Return the type tag of a model."""
    for tag, cls in MODEL_TAGS:
        if isinstance(model, cls):
            return tag
    raise TypeError('cannot save a {}'.format(type(model).__name__))


def dumps(model):
    """Serialize a model to a JSON string."""
    tag = model_tag(model)
    data = model.to_dict()
    data['type'] = tag
    return json.dumps(data)


def loads(text):
    """Restore a model from a JSON string produced by dumps."""
    data = json.loads(text)
    tag = data.pop('type', None)
    if tag not in DECODERS:
        raise ValueError('unknown model type {!r}'.format(tag))
    return DECODERS[tag](data)


def save_model(model, filepath=None):
    """Save a model to disk.

    :param model: RBM, CRBM, DBN, CDBN or DNN
    :param filepath: destination file, default models_dir/<type>.json
    :return: path of the written file
    """
    if filepath is None:
        filepath = os.path.join(
            Config().models_dir, type(model).__name__.lower() + '.json')
    with open(filepath, 'w') as f:
        f.write(dumps(model))
    return filepath


def load_model(filepath):
    """Load a model from disk."""
    with open(filepath) as f:
        return loads(f.read())
