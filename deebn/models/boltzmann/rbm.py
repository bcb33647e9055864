"""Restricted Boltzmann Machine trained with contrastive divergence.

Binary visible and hidden units, CD-1 with momentum, free energy based
early stopping. The CRBM variant models the joint density of a one-hot
label block and the data block, and classifies an observation by picking
the label with the lowest free energy.
"""

import numpy as np
import tensorflow as tf
from tqdm import tqdm

from deebn.core.config import DTYPE
from deebn.core.errors import InvalidDimension
from deebn.core.evaluation import Evaluation
from deebn.core.model import Classify, Testable, Trainable
from deebn.models.boltzmann.overfitting import OverfittingMonitor, \
    select_overfitting_sets
from deebn.utils import tf_utils, utilities

DEFAULTS = {
    'learning_rate': 0.1,
    'initial_momentum': 0.5,
    'momentum': 0.9,
    'momentum_delay': 3,
    'batch_size': 10,
    'epochs': 100,
    'gap_delay': 10,
    'gap_stop_delay': 2,
    'gap_check_interval': 2,
    'overfitting_sets': None,
    'verbose': 0,
    'summary': False,
    'seed': None,
    'generator': None,
}


class RBM(Trainable):
    """Restricted Boltzmann Machine with binary units.

    W has shape (visible, hidden). The velocities hold the momentum of the
    last update of each parameter and start at zero.
    """

    def __init__(self, W, vbias, hbias, W_vel=None, vbias_vel=None,
                 hbias_vel=None):
        self.W = utilities.to_tensor(W)
        if len(self.W.shape) != 2:
            raise InvalidDimension('W must be a matrix')
        self.vbias = utilities.to_tensor(vbias)
        self.hbias = utilities.to_tensor(hbias)
        self.W_vel = self._velocity(W_vel, self.W)
        self.vbias_vel = self._velocity(vbias_vel, self.vbias)
        self.hbias_vel = self._velocity(hbias_vel, self.hbias)

        if tuple(self.vbias.shape) != (self.visible,):
            raise InvalidDimension('vbias must have length {}'.format(
                self.visible))
        if tuple(self.hbias.shape) != (self.hidden,):
            raise InvalidDimension('hbias must have length {}'.format(
                self.hidden))

    @staticmethod
    def _velocity(vel, param):
        if vel is None:
            return tf.zeros_like(param)
        vel = utilities.to_tensor(vel)
        if vel.shape != param.shape:
            raise InvalidDimension('velocity shape {} does not match {}'.format(
                tuple(vel.shape), tuple(param.shape)))
        return vel

    @property
    def visible(self):
        return int(self.W.shape[0])

    @property
    def hidden(self):
        return int(self.W.shape[1])

    def _fields(self):
        return {
            'W': self.W, 'vbias': self.vbias, 'hbias': self.hbias,
            'W_vel': self.W_vel, 'vbias_vel': self.vbias_vel,
            'hbias_vel': self.hbias_vel
        }

    def replace(self, **kw):
        """Return a copy of this model with the given fields replaced."""
        fields = self._fields()
        fields.update(kw)
        return self.__class__(**fields)

    def train_model(self, dataset, params=None):
        """Train with CD-1 on an unlabeled dataset. See train_rbm."""
        return train_rbm(self, dataset, params)

    def transform(self, data, mean_field=True, generator=None):
        """Hidden representation of the data.

        :param data: array_like, shape (n_samples, visible)
        :param mean_field: return the hidden probabilities if True,
            a binary sample of them otherwise
        :param generator: tf.random.Generator used for sampling
        :return: tensor, shape (n_samples, hidden)
        """
        data = utilities.check_columns(utilities.as_tensor(data), self.visible)
        hprobs = hidden_probs(self, data)
        if mean_field:
            return hprobs
        return utilities.sample_prob(hprobs, utilities.get_generator(generator))

    def free_energy(self, x):
        """Free energy of a row or of every row of a matrix. See
        free_energy."""
        return free_energy(x, self)

    def to_dict(self):
        return {k: v.numpy().tolist() for k, v in RBM._fields(self).items()}

    @classmethod
    def from_dict(cls, data):
        return cls(**{k: np.asarray(data[k]) for k in data})


class CRBM(RBM, Testable, Classify):
    """RBM over the joint density of labels and observations.

    The visible layer is the concatenation of a one-hot block of `classes`
    units and the observation (data_width units).
    """

    def __init__(self, W, vbias, hbias, W_vel=None, vbias_vel=None,
                 hbias_vel=None, classes=None):
        RBM.__init__(self, W, vbias, hbias, W_vel, vbias_vel, hbias_vel)
        self.classes = utilities.check_dimension(classes, 'classes')
        if self.classes >= self.visible:
            raise InvalidDimension(
                'visible ({}) must exceed classes ({})'.format(
                    self.visible, self.classes))

    @property
    def data_width(self):
        return self.visible - self.classes

    def _fields(self):
        fields = RBM._fields(self)
        fields['classes'] = self.classes
        return fields

    def to_dict(self):
        out = RBM.to_dict(self)
        out['classes'] = self.classes
        return out

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        classes = data.pop('classes')
        return cls(classes=classes, **{k: np.asarray(data[k]) for k in data})

    def free_energies(self, data):
        """Free energy of every (observation, class) pair.

        :param data: array_like, shape (n_samples, data_width)
        :return: numpy array, shape (n_samples, classes)
        """
        data = utilities.check_columns(
            utilities.as_tensor(data), self.data_width, 'observation')
        n = utilities.num_rows(data)
        energies = []
        for c in range(self.classes):
            labels = tf.tile(
                utilities.as_tensor(utilities.gen_softmax(c, self.classes)),
                [n, 1])
            energies.append(free_energy(tf.concat([labels, data], 1), self))
        return np.stack(energies, axis=1)

    def predict(self, data):
        """Predicted class of every observation: the label whose trial
        vector has the lowest free energy, the first one on ties."""
        return Evaluation.first_argmin(self.free_energies(data))

    def classify(self, obv):
        return int(self.predict(utilities.as_tensor(obv))[0])

    def test_model(self, dataset):
        """Error rate over a dataset of [observation | class index] rows."""
        data, labels = utilities.split_labels(dataset)
        return Evaluation.error_rate(self.predict(data), labels)


def build_rbm(visible, hidden, generator=None, hbias_init=0.0):
    """Factory function to produce an RBM.

    Weights are drawn from a truncated normal distribution with standard
    deviation 0.01, the visible biases are zero and the hidden biases are
    hbias_init (a negative value discourages hidden units from being on).

    :param visible: number of visible units
    :param hidden: number of hidden units
    :param generator: seed or tf.random.Generator
    :param hbias_init: initial value of the hidden biases
    :return: RBM
    """
    visible = utilities.check_dimension(visible, 'visible')
    hidden = utilities.check_dimension(hidden, 'hidden')
    generator = utilities.get_generator(generator)
    return RBM(
        W=generator.truncated_normal([visible, hidden], stddev=0.01,
                                     dtype=DTYPE),
        vbias=tf.zeros([visible], dtype=DTYPE),
        hbias=tf.fill([hidden], tf.constant(hbias_init, dtype=DTYPE)))


def build_crbm(visible, hidden, classes, generator=None, hbias_init=0.0):
    """Build a joint density RBM for classification.

    :param visible: width of an observation
    :param hidden: number of hidden units
    :param classes: number of classes
    :return: CRBM with visible + classes visible units
    """
    visible = utilities.check_dimension(visible, 'visible')
    classes = utilities.check_dimension(classes, 'classes')
    rbm = build_rbm(visible + classes, hidden, generator, hbias_init)
    return CRBM(rbm.W, rbm.vbias, rbm.hbias, classes=classes)


def hidden_probs(rbm, visible):
    """Activation probabilities of the hidden units given the visible ones.

    This is the positive phase of contrastive divergence.
    """
    return utilities.sigmoid(rbm.hbias + tf.matmul(visible, rbm.W))


def visible_probs(rbm, hidden):
    """Activation probabilities of the visible units given the hidden ones."""
    return utilities.sigmoid(
        rbm.vbias + tf.matmul(hidden, rbm.W, transpose_b=True))


def update_rbm(batch, rbm, learning_rate, momentum, generator):
    """Single batch step (CD-1) update of the RBM parameters.

    The reconstruction is a binary sample of the visible probabilities,
    and that sample drives both the second hidden pass and the negative
    statistics.

    :param batch: tensor, shape (batch_size, visible)
    :param rbm: current model
    :param learning_rate: gradient step scale
    :param momentum: weight of the previous velocity
    :param generator: tf.random.Generator
    :return: tuple(updated RBM, reconstruction error of the batch)
    """
    batch_size = utilities.num_rows(batch)

    ph = hidden_probs(rbm, batch)
    h = utilities.sample_prob(ph, generator)
    pv = visible_probs(rbm, h)
    v = utilities.sample_prob(pv, generator)
    ph2 = hidden_probs(rbm, v)

    positive = tf.matmul(batch, ph, transpose_a=True)
    negative = tf.matmul(v, ph2, transpose_a=True)
    delta_w = (positive - negative) / batch_size
    delta_vbias = tf.reduce_mean(batch - v, 0)
    delta_hbias = tf.reduce_mean(ph - ph2, 0)

    w_vel = momentum * rbm.W_vel + learning_rate * delta_w
    vbias_vel = momentum * rbm.vbias_vel + learning_rate * delta_vbias
    hbias_vel = momentum * rbm.hbias_vel + learning_rate * delta_hbias

    squared_error = float(tf.reduce_sum(tf.square(batch - v))) / batch_size

    return rbm.replace(
        W=rbm.W + w_vel, vbias=rbm.vbias + vbias_vel,
        hbias=rbm.hbias + hbias_vel, W_vel=w_vel, vbias_vel=vbias_vel,
        hbias_vel=hbias_vel), squared_error


def train_epoch(rbm, dataset, learning_rate, momentum, batch_size, generator):
    """Train a single epoch, one CD-1 step per batch in dataset order.

    :return: tuple(updated RBM, mean reconstruction error over the batches)
    """
    errors = []
    for batch in utilities.gen_batches(dataset, batch_size):
        rbm, error = update_rbm(batch, rbm, learning_rate, momentum,
                                generator)
        errors.append(error)
    return rbm, float(np.mean(errors)) if errors else 0.0


def free_energy(x, rbm):
    """Compute the free energy of visible vectors. Lower is better.

    F(x) = -x.vbias - sum_j log(1 + exp(hbias_j + (x W)_j))

    :param x: a single visible vector or a matrix of them
    :param rbm: model
    :return: float for a single vector, numpy array with one value per row
        otherwise
    """
    single = utilities.is_single(x)
    x = utilities.check_columns(utilities.as_tensor(x), rbm.visible)
    hidden_input = rbm.hbias + tf.matmul(x, rbm.W)
    energy = -tf.linalg.matvec(x, rbm.vbias) - \
        tf.reduce_sum(tf.nn.softplus(hidden_input), axis=1)
    energy = utilities.check_finite(energy, 'free energy').numpy()
    return float(energy[0]) if single else energy


def momentum_for_epoch(epoch, params):
    """initial_momentum up to momentum_delay (included), momentum after."""
    if epoch <= params['momentum_delay']:
        return params['initial_momentum']
    return params['momentum']


def train_rbm(rbm, dataset, params=None):
    """Given a training set, train an RBM.

    Every gap_check_interval epochs the free energy gap between a sample of
    the training set and a validation set is measured before the epoch is
    trained. Training stops early once epoch >= gap_delay and the gap has
    grown gap_stop_delay checks in a row.

    params is a dict that may have the keys of DEFAULTS. overfitting_sets
    is a dict with `validations` (observations held out from training) and
    `train_sample` (observations used for training); both are sampled from
    the dataset when it is not given.

    :param rbm: RBM or CRBM to train
    :param dataset: array_like, shape (n_samples, rbm.visible)
    :param params: dict of hyper-parameters
    :return: trained model
    """
    params = utilities.get_params(params, DEFAULTS)
    dataset = utilities.check_columns(utilities.as_tensor(dataset), rbm.visible)
    batch_size = utilities.check_dimension(params['batch_size'], 'batch_size')
    generator = utilities.params_generator(params)

    monitor = None
    if params['gap_check_interval'] > 0:
        overfitting_sets = params['overfitting_sets'] or \
            select_overfitting_sets(dataset, generator)
        if overfitting_sets is not None:
            monitor = OverfittingMonitor(
                overfitting_sets['train_sample'],
                overfitting_sets['validations'],
                params['gap_delay'], params['gap_stop_delay'])

    summary_writer = tf_utils.summary_writer_for(params)

    pbar = tqdm(range(1, params['epochs'] + 1), disable=not params['verbose'])
    for epoch in pbar:
        if monitor is not None and epoch % params['gap_check_interval'] == 0:
            gap, train_energy, validation_energy = monitor.check(rbm)
            tf_utils.run_summaries(
                summary_writer, epoch, free_energy_gap=gap,
                train_free_energy=train_energy,
                validation_free_energy=validation_energy)
            if monitor.should_stop(epoch):
                if params['verbose']:
                    print('Free energy gap grew {} checks in a row, '
                          'stopping at epoch {}'.format(
                              monitor.increases, epoch))
                break

        rbm, error = train_epoch(
            rbm, dataset, params['learning_rate'],
            momentum_for_epoch(epoch, params), batch_size, generator)
        pbar.set_description('Reconstruction error: %s' % (error))
        tf_utils.run_summaries(summary_writer, epoch,
                               reconstruction_error=error)

    return rbm
