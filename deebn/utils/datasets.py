"""Datasets module. Provides utilities to load delimited text datasets.

The MNIST CSV layout is assumed by default: one observation per line, the
class label first, then the pixel intensities in [0, 255].
"""

import os

import numpy as np

from deebn.core.config import Config
from deebn.utils import utilities


def dataset_path(filepath, data_dir=None):
    """Path of a dataset file. A path that does not exist is looked up in
    data_dir, Config().data_dir by default."""
    if os.path.exists(filepath):
        return filepath
    if data_dir is None:
        data_dir = Config().data_dir
    return os.path.join(data_dir, filepath)


def load_data(filepath, label_first=True, scale=255.0, delimiter=','):
    """Load a labeled dataset, features scaled to [0, 1].

    :param filepath: path to the delimited text file, or its name in
        Config().data_dir
    :param label_first: whether the label is the first column of the file
        (otherwise it is the last one)
    :param scale: the features are divided by this value
    :param delimiter: column delimiter
    :return: numpy array, rows [features | label]
    """
    data = np.loadtxt(dataset_path(filepath), delimiter=delimiter, ndmin=2)
    if label_first:
        labels, features = data[:, :1], data[:, 1:]
    else:
        labels, features = data[:, -1:], data[:, :-1]
    return np.hstack([features / scale, labels])


def load_data_sans_label(filepath, **kwargs):
    """Load a dataset without the label. See load_data."""
    return load_data(filepath, **kwargs)[:, :-1]


def load_data_with_softmax(filepath, classes=10, **kwargs):
    """Load a dataset with the class label expanded to a leading one-hot
    block.

    Example: with 10 classes, class '7' expands to 0 0 0 0 0 0 0 1 0 0

    :return: numpy array, rows [one-hot label | features]
    """
    data = load_data(filepath, **kwargs)
    return np.hstack([utilities.to_one_hot(data[:, -1], classes),
                      data[:, :-1]])
