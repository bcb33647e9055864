"""k-fold cross-validation of the deebn models."""

import math

import numpy as np

from deebn.core.model import test_model, train_model
from deebn.models.feedforward.dnn import dbn_to_dnn
from deebn.utils import utilities


def select_folds(n_rows, k, generator=None):
    """Split the shuffled row indices into k folds of ceil(n_rows / k)
    rows (the last fold may be shorter).

    :return: list of numpy arrays of row indices
    """
    k = utilities.check_dimension(k, 'k')
    rows = utilities.random_permutation(n_rows, utilities.get_generator(generator))
    part_size = max(1, int(math.ceil(n_rows / k)))
    return [rows[i:i + part_size] for i in range(0, n_rows, part_size)]


def _split(data, holdouts):
    """Rows outside and inside the fold."""
    data = np.asarray(data)
    mask = np.ones(len(data), dtype=bool)
    mask[holdouts] = False
    return data[mask], data[holdouts]


def k_fold_cross_validation(model, train_data, test_data, params, k):
    """Perform k-fold cross-validation of a model.

    train_data and test_data are two formats of the same dataset, row for
    row: the model is trained on train_data without the fold and tested on
    the fold of test_data.

    :return: list of error rates, one per fold
    """
    generator = utilities.params_generator(params or {})
    params = dict(params or {}, generator=generator)
    errors = []
    for holdouts in select_folds(len(train_data), k, generator):
        train_folds, _ = _split(train_data, holdouts)
        _, test_fold = _split(test_data, holdouts)
        m = train_model(model, train_folds, params)
        errors.append(test_model(m, test_fold))
    return errors


def k_fold_cross_validation_dnn(model, train_data, test_data, params, k,
                                classes):
    """Perform k-fold cross-validation of a DBN refined into a DNN.

    The DBN is trained on the unlabeled train_data outside the fold,
    converted to a DNN, trained on the labeled test_data outside the fold
    and tested on the fold of test_data.

    :return: list of error rates, one per fold
    """
    generator = utilities.params_generator(params or {})
    params = dict(params or {}, generator=generator)
    errors = []
    for holdouts in select_folds(len(train_data), k, generator):
        train_folds, _ = _split(train_data, holdouts)
        labeled_folds, test_fold = _split(test_data, holdouts)
        m = train_model(model, train_folds, params)
        m = dbn_to_dnn(m, classes, generator)
        m = train_model(m, labeled_folds, params)
        errors.append(test_model(m, test_fold))
    return errors
