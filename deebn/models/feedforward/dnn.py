"""Deep Neural Network initialized from a trained Deep Belief Network.

The weights and hidden biases of the DBN's RBMs become the sigmoid layers of
a feed-forward network, a new output layer with one unit per class is put on
top, and the network is refined with backpropagation in two phases: the
output layer alone first, then the whole network with L2 weight decay.
"""

import numpy as np
import tensorflow as tf
from tqdm import tqdm

from deebn.core.config import DTYPE
from deebn.core.errors import InvalidDimension
from deebn.core.evaluation import Evaluation
from deebn.core.model import Classify, Testable, Trainable
from deebn.models.boltzmann.dbn import CDBN
from deebn.utils import tf_utils, utilities

DEFAULTS = {
    'batch_size': 100,
    'epochs': 100,
    'pretrain_epochs': None,
    'learning_rate': 0.5,
    'lambda': 0.1,
    'verbose': 0,
    'summary': False,
}


class DNN(Trainable, Testable, Classify):
    """Feed-forward network of sigmoid layers.

    :param weights: list of weight matrices, weights[i] maps the output of
        layer i to layer i + 1
    :param biases: list of bias vectors, one per weight matrix
    :param layers: layer sizes of the originating DBN
    :param classes: number of output units
    """

    def __init__(self, weights, biases, layers, classes):
        self.weights = [utilities.to_tensor(w) for w in weights]
        self.biases = [utilities.to_tensor(b) for b in biases]
        self.layers = [utilities.check_dimension(l, 'layer') for l in layers]
        self.classes = utilities.check_dimension(classes, 'classes')

        if not self.weights or len(self.weights) != len(self.biases):
            raise InvalidDimension('a DNN needs one bias per weight matrix')
        for i, (w, b) in enumerate(zip(self.weights, self.biases)):
            if len(w.shape) != 2 or tuple(b.shape) != (int(w.shape[1]),):
                raise InvalidDimension(
                    'layer {}: weights {} and bias {} do not match'.format(
                        i, tuple(w.shape), tuple(b.shape)))
            if i > 0 and int(w.shape[0]) != int(self.weights[i - 1].shape[1]):
                raise InvalidDimension(
                    'layer {} has {} inputs, layer {} has {} outputs'.format(
                        i, int(w.shape[0]), i - 1,
                        int(self.weights[i - 1].shape[1])))
        if int(self.weights[-1].shape[1]) != self.classes:
            raise InvalidDimension('the output layer must have {} units'.format(
                self.classes))

    @property
    def n_inputs(self):
        return int(self.weights[0].shape[0])

    def replace(self, **kw):
        """Return a copy of this model with the given fields replaced."""
        fields = {'weights': self.weights, 'biases': self.biases,
                  'layers': self.layers, 'classes': self.classes}
        fields.update(kw)
        return self.__class__(**fields)

    def train_model(self, dataset, params=None):
        """Supervised training on [observation | class index] rows. See
        train_dnn."""
        return train_dnn(self, dataset, params)

    def predict_proba(self, data):
        """Output layer activations for every observation."""
        data = utilities.check_columns(
            utilities.as_tensor(data), self.n_inputs, 'observation')
        return net_output(self, data).numpy()

    def predict(self, data):
        """Predicted class of every observation, the output unit with the
        largest activation (the first one on ties)."""
        return Evaluation.first_argmax(self.predict_proba(data))

    def classify(self, obv):
        return int(self.predict(utilities.as_tensor(obv))[0])

    def test_model(self, dataset):
        """Error rate over a dataset of [observation | class index] rows."""
        data, labels = utilities.split_labels(dataset)
        return Evaluation.error_rate(self.predict(data), labels)

    def to_dict(self):
        return {'weights': [w.numpy().tolist() for w in self.weights],
                'biases': [b.numpy().tolist() for b in self.biases],
                'layers': list(self.layers), 'classes': self.classes}

    @classmethod
    def from_dict(cls, data):
        return cls([np.asarray(w) for w in data['weights']],
                   [np.asarray(b) for b in data['biases']],
                   data['layers'], data['classes'])


def dbn_to_dnn(dbn, classes, generator=None):
    """Given a pretrained Deep Belief Network, use the trained weights and
    hidden biases to build a Deep Neural Network.

    The new output layer has shape (layers[-1], classes), normally
    distributed weights and zero biases. The label units of the top CRBM of
    a classification DBN have no feed-forward counterpart and are dropped.

    :param dbn: trained DBN or CDBN
    :param classes: number of classes
    :param generator: seed or tf.random.Generator
    :return: DNN
    """
    classes = utilities.check_dimension(classes, 'classes')
    if len(dbn.rbms) < 1:
        raise InvalidDimension('cannot build a DNN from a DBN without RBMs')
    generator = utilities.get_generator(generator)

    weights = [r.W for r in dbn.rbms]
    if isinstance(dbn, CDBN):
        weights[-1] = weights[-1][dbn.classes:]
    top_w = generator.normal([dbn.layers[-1], classes], dtype=DTYPE)
    top_bias = tf.zeros([classes], dtype=DTYPE)

    return DNN(weights + [top_w], [r.hbias for r in dbn.rbms] + [top_bias],
               dbn.layers, classes)


def prop_up(inputs, weights, bias):
    """Given an input matrix, weight matrix, and bias vector, propagate
    the signal through the layer."""
    return utilities.sigmoid(bias + tf.matmul(inputs, weights))


def feed_forward(batch, dnn):
    """Feed the batch through the net, retaining the output of each layer.

    :return: list [input, output of layer 1, ..., network output]
    """
    outputs = [utilities.as_tensor(batch)]
    for w, b in zip(dnn.weights, dnn.biases):
        outputs.append(prop_up(outputs[-1], w, b))
    return outputs


def net_output(dnn, inputs):
    """Propagate an input matrix through the network."""
    return feed_forward(inputs, dnn)[-1]


def layer_error(weights, next_error, output):
    """Error of a layer, given the weights of the next layer, the error of
    the next layer and the output of the current layer."""
    impact = tf.matmul(next_error, weights, transpose_b=True)
    return impact * output * (1 - output)


def update_layer(weights, bias, inputs, error, learning_rate, decay):
    """Gradient step on one layer.

    :param inputs: input coming into the weights
    :param error: error of the layer
    :param decay: multiplicative L2 weight decay factor
    :return: tuple(new weights, new bias)
    """
    batch_size = utilities.num_rows(inputs)
    step = learning_rate / batch_size
    weights = weights * decay - \
        step * tf.matmul(inputs, error, transpose_a=True)
    bias = bias - step * tf.reduce_sum(error, 0)
    return weights, bias


def train_batch(batch, dnn, learning_rate, lam, observations):
    """Given a batch of labeled training data, update the weights and
    biases of the DNN.

    The output error is output - target, the gradient of the cross entropy
    with respect to the output pre-activations.

    :param batch: tensor of [observation | class index] rows
    :param dnn: DNN to update
    :param learning_rate: gradient step scale
    :param lam: L2 weight decay coefficient
    :param observations: row count of the whole training set
    :return: tuple(updated DNN, mean squared output error of the batch)
    """
    data, labels = utilities.split_labels(batch)
    targets = utilities.as_tensor(utilities.to_one_hot(labels, dnn.classes))

    outputs = feed_forward(data, dnn)
    errors = [outputs[-1] - targets]
    for i in range(len(dnn.weights) - 1, 0, -1):
        errors.insert(0, layer_error(dnn.weights[i], errors[0], outputs[i]))

    decay = 1 - learning_rate * lam / observations
    weights, biases = [], []
    for w, b, inputs, error in zip(dnn.weights, dnn.biases, outputs[:-1],
                                   errors):
        w, b = update_layer(w, b, inputs, error, learning_rate, decay)
        weights.append(w)
        biases.append(b)

    cost = float(tf.reduce_mean(
        tf.reduce_sum(tf.square(outputs[-1] - targets), 1)))
    return dnn.replace(weights=weights, biases=biases), cost


def train_epoch(dnn, dataset, learning_rate, lam, batch_size, observations):
    """Train the net for one epoch (one pass over the dataset).

    :return: tuple(updated DNN, mean cost over the batches)
    """
    costs = []
    for batch in utilities.gen_batches(dataset, batch_size):
        dnn, cost = train_batch(batch, dnn, learning_rate, lam, observations)
        costs.append(cost)
    return dnn, float(np.mean(costs)) if costs else 0.0


def _run_epochs(dnn, dataset, params, epochs, name):
    observations = utilities.num_rows(dataset)
    batch_size = utilities.check_dimension(params['batch_size'], 'batch_size')
    summary_writer = tf_utils.summary_writer_for(params)

    pbar = tqdm(range(1, epochs + 1), desc=name, disable=not params['verbose'])
    for epoch in pbar:
        dnn, cost = train_epoch(dnn, dataset, params['learning_rate'],
                                params['lambda'], batch_size, observations)
        pbar.set_description('%s cost: %s' % (name, cost))
        tf_utils.run_summaries(summary_writer, epoch, **{name + '_cost': cost})
    return dnn


def pretrain_top_layer(dnn, dataset, params=None):
    """Train the output layer alone, the other layers being frozen.

    The output of the frozen layers is computed once over the dataset and
    the output layer is trained on it with the update rule of train_batch.

    :param dnn: DNN
    :param dataset: [observation | class index] rows
    :param params: see train_dnn, pretrain_epochs defaults to epochs
    :return: DNN with a trained output layer
    """
    params = utilities.get_params(params, DEFAULTS)
    dataset = utilities.check_columns(
        utilities.as_tensor(dataset), dnn.n_inputs + 1)
    epochs = params['pretrain_epochs']
    if epochs is None:
        epochs = params['epochs']

    frozen, labels = dataset[:, :-1], dataset[:, -1:]
    for w, b in zip(dnn.weights[:-1], dnn.biases[:-1]):
        frozen = prop_up(frozen, w, b)
    top = DNN([dnn.weights[-1]], [dnn.biases[-1]], dnn.layers, dnn.classes)
    top = _run_epochs(top, tf.concat([frozen, labels], 1), params, epochs,
                      'pretrain')

    return dnn.replace(weights=dnn.weights[:-1] + top.weights,
                       biases=dnn.biases[:-1] + top.biases)


def train_dnn(dnn, dataset, params=None):
    """Given a labeled dataset, train a DNN.

    The dataset should have the class index as the last element of each
    row. The output layer is pretrained first (see pretrain_top_layer),
    then the whole network is trained with backpropagation.

    params is a dict that may have the following keys:
    batch_size: default 100
    epochs: default 100
    pretrain_epochs: epochs of the output layer pretraining, default epochs
    learning_rate: default 0.5
    lambda: L2 weight decay coefficient, default 0.1

    :return: trained DNN
    """
    params = utilities.get_params(params, DEFAULTS)
    dataset = utilities.check_columns(
        utilities.as_tensor(dataset), dnn.n_inputs + 1)

    dnn = pretrain_top_layer(dnn, dataset, params)
    return _run_epochs(dnn, dataset, params, params['epochs'], 'finetune')
