"""Evaluation of classification models."""

import numpy as np


class Evaluation(object):
    """Collection of evaluation methods."""

    @staticmethod
    def error_rate(predictions, labels):
        """Fraction of predictions that differ from the labels.

        Parameters
        ----------

        predictions : array_like, shape (n_samples,)
            Predicted class indices.

        labels : array_like, shape (n_samples,)
            True class indices.

        Returns
        -------

        float : mismatches / n_samples, 0.0 for an empty dataset.
        """
        predictions = np.asarray(predictions).astype(np.int64)
        labels = np.asarray(labels).astype(np.int64)
        if len(labels) == 0:
            return 0.0
        return float(np.sum(predictions != labels)) / len(labels)

    @staticmethod
    def first_argmin(values):
        """Column of the row-wise minimum, the first one on ties."""
        return np.argmin(np.asarray(values), axis=1)

    @staticmethod
    def first_argmax(values):
        """Column of the row-wise maximum, the first one on ties."""
        return np.argmax(np.asarray(values), axis=1)
