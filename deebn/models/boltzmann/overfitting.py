"""Free energy based overfitting monitor for RBM training.

The average free energy of rows seen during training drifts away from the
average free energy of held-out rows when the model starts to overfit.
The monitor tracks that gap and asks training to stop once it has grown for
a number of consecutive checks.
"""

import numpy as np
import tensorflow as tf

from deebn.utils import utilities


def select_overfitting_sets(dataset, generator, fraction=0.01):
    """Choose a validation set and a train sample to monitor overfitting.

    Both sets hold about `fraction` of the rows (at least one), drawn
    without replacement, and they never share a row.

    :param dataset: training set
    :param generator: tf.random.Generator
    :param fraction: fraction of the rows in each set
    :return: dict(validations, train_sample), None if the dataset has
        fewer than two rows
    """
    obvs = utilities.num_rows(dataset)
    if obvs < 2:
        return None
    size = min(max(1, int(obvs * fraction)), obvs // 2)
    perm = utilities.random_permutation(obvs, generator)
    dataset = utilities.as_tensor(dataset)
    return {
        'validations': tf.gather(dataset, perm[:size]),
        'train_sample': tf.gather(dataset, perm[size:2 * size])
    }


class OverfittingMonitor(object):
    """Track the free energy gap between a train sample and a validation set.

    :param train_sample: rows taken from the training set
    :param validations: rows the model is validated on
    :param gap_delay: first epoch at which training may stop
    :param gap_stop_delay: number of consecutive gap increases that stop
        training
    """

    def __init__(self, train_sample, validations, gap_delay=10,
                 gap_stop_delay=2):
        self.train_sample = utilities.as_tensor(train_sample)
        self.validations = utilities.as_tensor(validations)
        self.gap_delay = gap_delay
        self.gap_stop_delay = gap_stop_delay

        self.gap = None
        self.increases = 0

    def check(self, rbm):
        """Compute the current gap and update the increase counter.

        :param rbm: model being trained
        :return: tuple(gap, avg train free energy, avg validation free energy)
        """
        avg_train_energy = float(np.mean(rbm.free_energy(self.train_sample)))
        avg_validation_energy = float(
            np.mean(rbm.free_energy(self.validations)))
        gap = abs(avg_train_energy - avg_validation_energy)

        if self.gap is not None and gap > self.gap:
            self.increases += 1
        else:
            self.increases = 0
        self.gap = gap

        return gap, avg_train_energy, avg_validation_energy

    def should_stop(self, epoch):
        """True once epoch >= gap_delay and the gap grew gap_stop_delay
        checks in a row."""
        return epoch >= self.gap_delay and \
            self.increases >= self.gap_stop_delay
