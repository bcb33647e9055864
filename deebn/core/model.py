"""Model capability contracts.

Three contracts are shared by the models:

* Trainable: ``train_model(dataset, params) -> new model``
* Testable: ``test_model(dataset) -> error rate in [0, 1]``
* Classify: ``classify(observation) -> class index``

Training never mutates a model, it returns a new value. The module level
functions dispatch to the implementation of the given model.
"""

import abc


class Trainable(metaclass=abc.ABCMeta):
    """Models that are trainable with a dataset."""

    @abc.abstractmethod
    def train_model(self, dataset, params=None):
        """Train the model, given a dataset and the relevant
        hyper-parameters, and return the trained model."""
        pass


class Testable(metaclass=abc.ABCMeta):
    """Models that are testable on a labeled dataset."""

    @abc.abstractmethod
    def test_model(self, dataset):
        """Return the error rate of the model over the dataset.
        Each row holds the observation followed by its class index."""
        pass


class Classify(metaclass=abc.ABCMeta):
    """Models that can classify a single observation."""

    @abc.abstractmethod
    def classify(self, obv):
        """Return the class index predicted for the observation."""
        pass


def train_model(m, dataset, params=None):
    """Train model `m` on dataset. See the model's train_model."""
    if not isinstance(m, Trainable):
        raise TypeError('{} is not trainable.'.format(type(m).__name__))
    return m.train_model(dataset, params)


def test_model(m, dataset):
    """Error rate of model `m` on dataset. See the model's test_model."""
    if not isinstance(m, Testable):
        raise TypeError('{} is not testable.'.format(type(m).__name__))
    return m.test_model(dataset)


def classify(m, obv):
    """Class of observation `obv` according to model `m`."""
    if not isinstance(m, Classify):
        raise TypeError('{} cannot classify.'.format(type(m).__name__))
    return m.classify(obv)
