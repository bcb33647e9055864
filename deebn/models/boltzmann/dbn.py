"""Deep Belief Network built as a stack of Restricted Boltzmann Machines.

The RBMs are trained greedily, layer by layer: the hidden representation
of the data under a trained RBM is the training set of the next one.
A classification DBN (CDBN) tops the stack with a joint density RBM
(CRBM) trained on the labels and the representation of the layer below.
"""

import tensorflow as tf

from deebn.core.errors import InvalidDimension
from deebn.core.evaluation import Evaluation
from deebn.core.model import Classify, Testable, Trainable
from deebn.models.boltzmann import rbm as rbm_module
from deebn.utils import utilities


class DBN(Trainable):
    """Deep Belief Network.

    :param rbms: list of RBM, rbms[i].hidden == rbms[i + 1].visible
    :param layers: list of layer sizes, starting with the visible layer
    """

    def __init__(self, rbms, layers):
        self.rbms = list(rbms)
        self.layers = [utilities.check_dimension(l, 'layer') for l in layers]
        self._check_chain()

    def _check_chain(self):
        if len(self.layers) != len(self.rbms) + 1:
            raise InvalidDimension('{} rbms need {} layer sizes, got {}'.format(
                len(self.rbms), len(self.rbms) + 1, len(self.layers)))
        # rbms[i].hidden == rbms[i + 1].visible follows from the layer sizes
        for i, r in enumerate(self.rbms):
            if (r.visible, r.hidden) != (self.layers[i], self.layers[i + 1]):
                raise InvalidDimension(
                    'rbm {} is {}x{}, layer sizes are {}x{}'.format(
                        i, r.visible, r.hidden,
                        self.layers[i], self.layers[i + 1]))

    def replace(self, **kw):
        """Return a copy of this model with the given fields replaced."""
        fields = {'rbms': self.rbms, 'layers': self.layers}
        fields.update(kw)
        return self.__class__(**fields)

    def train_model(self, dataset, params=None):
        """Greedy unsupervised training. See train_dbn."""
        return train_dbn(self, dataset, params)

    def transform(self, data, mean_field=True, generator=None):
        """Propagate the data through every RBM of the network.

        :param data: array_like, shape (n_samples, layers[0])
        :return: tensor, shape (n_samples, rbms[-1].hidden)
        """
        next_data = utilities.as_tensor(data)
        for r in self.rbms:
            next_data = r.transform(next_data, mean_field, generator)
        return next_data

    def to_dict(self):
        return {'rbms': [r.to_dict() for r in self.rbms],
                'layers': list(self.layers)}

    @classmethod
    def from_dict(cls, data):
        return cls([rbm_module.RBM.from_dict(r) for r in data['rbms']],
                   data['layers'])


class CDBN(DBN, Testable, Classify):
    """Deep Belief Network designed to classify observations.

    The last RBM is a CRBM over [one-hot label | representation of the
    layers below].
    """

    def __init__(self, rbms, layers, classes):
        self.classes = utilities.check_dimension(classes, 'classes')
        DBN.__init__(self, rbms, layers)

    def _check_chain(self):
        if not self.rbms or not isinstance(self.rbms[-1], rbm_module.CRBM):
            raise InvalidDimension('the last rbm of a CDBN must be a CRBM')
        top = self.rbms[-1]
        if top.classes != self.classes:
            raise InvalidDimension('top CRBM has {} classes, expected {}'.format(
                top.classes, self.classes))
        DBN(self.rbms[:-1], self.layers[:-1])
        # the top CRBM sees the labels as well as the layer below
        if (top.data_width, top.hidden) != tuple(self.layers[-2:]):
            raise InvalidDimension(
                'top CRBM is {}x{}, expected {}x{}'.format(
                    top.data_width, top.hidden, *self.layers[-2:]))

    def replace(self, **kw):
        fields = {'rbms': self.rbms, 'layers': self.layers,
                  'classes': self.classes}
        fields.update(kw)
        return self.__class__(**fields)

    def train_model(self, dataset, params=None):
        """Train on [one-hot label | data] rows. See train_classify_dbn."""
        return train_classify_dbn(self, dataset, params)

    def lower_representation(self, data):
        """Mean-field propagation of the data through all but the top RBM."""
        next_data = utilities.check_columns(
            utilities.as_tensor(data), self.layers[0], 'observation')
        for r in self.rbms[:-1]:
            next_data = r.transform(next_data, mean_field=True)
        return next_data

    def predict(self, data):
        """Predicted class of every observation."""
        return self.rbms[-1].predict(self.lower_representation(data))

    def classify(self, obv):
        return int(self.predict(utilities.as_tensor(obv))[0])

    def test_model(self, dataset):
        """Error rate over a dataset of [observation | class index] rows.

        The observations go through the lower RBMs, the true labels are
        attached again and the top CRBM is tested on the result.
        """
        data, labels = utilities.split_labels(dataset)
        top_data = tf.concat(
            [self.lower_representation(data),
             utilities.as_tensor(labels.reshape(-1, 1))], 1)
        return self.rbms[-1].test_model(top_data)

    def to_dict(self):
        out = {'rbms': [r.to_dict() for r in self.rbms[:-1]],
               'top': self.rbms[-1].to_dict(),
               'layers': list(self.layers), 'classes': self.classes}
        return out

    @classmethod
    def from_dict(cls, data):
        rbms = [rbm_module.RBM.from_dict(r) for r in data['rbms']]
        rbms.append(rbm_module.CRBM.from_dict(data['top']))
        return cls(rbms, data['layers'], data['classes'])


def build_dbn(layers, generator=None):
    """Build a Deep Belief Network composed of Restricted Boltzmann Machines.

    layers is a list of the number of units in each layer, starting with
    the visible layer.

    Ex: [784, 500, 500, 2000] -> 784-500 RBM, a 500-500 RBM, and a
    top-level 500-2000 associative memory

    :param layers: list of layer sizes, at least three
    :param generator: seed or tf.random.Generator
    :return: DBN
    """
    if len(layers) < 3:
        raise InvalidDimension(
            'a DBN needs at least 3 layers, got {}'.format(len(layers)))
    generator = utilities.get_generator(generator)
    rbms = [rbm_module.build_rbm(v, h, generator)
            for v, h in zip(layers[:-1], layers[1:])]
    return DBN(rbms, layers)


def build_classify_dbn(layers, classes, generator=None):
    """Build a Deep Belief Network designed to classify an observation.

    See build_dbn for the layers usage. The top RBM joins layers[-2] (plus
    `classes` label units) to layers[-1].

    :param layers: list of layer sizes, at least three
    :param classes: number of possible classes of an observation
    :return: CDBN
    """
    if len(layers) < 3:
        raise InvalidDimension(
            'a DBN needs at least 3 layers, got {}'.format(len(layers)))
    generator = utilities.get_generator(generator)
    rbms = [rbm_module.build_rbm(v, h, generator)
            for v, h in zip(layers[:-2], layers[1:-1])]
    rbms.append(rbm_module.build_crbm(layers[-2], layers[-1], classes,
                                      generator))
    return CDBN(rbms, layers, classes)


def transform_overfitting_sets(sets, rbm, mean_field=True, generator=None):
    """Hidden representation of both overfitting sets under a trained RBM,
    so they can monitor the next layer."""
    if sets is None:
        return None
    return {k: rbm.transform(v, mean_field, generator)
            for k, v in sets.items()}


def train_dbn(dbn, dataset, params=None):
    """Train a generative Deep Belief Network on a dataset.

    This trained model doesn't have an inherent value, unless the trained
    weights are subsequently used to initialize another network, e.g. a
    feed-forward neural network (see deebn.models.feedforward.dnn).

    params may hold, besides the RBM hyper-parameters (see train_rbm):

    * mean_field: use the hidden probabilities of a trained RBM as input to
      the next one instead of a binary sample. Default True.
    * query_final: also return the hidden representation of the data under
      the final RBM. Default False.

    Given overfitting_sets have the width of the dataset; each trained layer
    transforms them along with the data.

    :param dbn: DBN to train
    :param dataset: unlabeled dataset, shape (n_samples, layers[0])
    :param params: dict of hyper-parameters
    :return: trained DBN, or tuple(trained DBN, final representation) if
        query_final
    """
    params = utilities.get_params(params, {'mean_field': True,
                                           'query_final': False,
                                           'overfitting_sets': None})
    generator = utilities.params_generator(params)
    params['generator'] = generator
    mean_field = params['mean_field']
    query_final = params['query_final']
    sets = params['overfitting_sets']

    rbms = []
    data = utilities.as_tensor(dataset)
    for l, layer_obj in enumerate(dbn.rbms):
        if params.get('verbose'):
            print('Training layer {}...'.format(l + 1))
        layer_obj = rbm_module.train_rbm(
            layer_obj, data, dict(params, overfitting_sets=sets))
        rbms.append(layer_obj)
        # the last representation is only needed when asked for
        if l + 1 < len(dbn.rbms) or query_final:
            data = layer_obj.transform(data, mean_field, generator)
            sets = transform_overfitting_sets(sets, layer_obj, mean_field,
                                              generator)

    trained = dbn.replace(rbms=rbms)
    if query_final:
        return trained, data
    return trained


def train_classify_dbn(cdbn, dataset, params=None):
    """Train a Deep Belief Network designed to classify data vectors.

    dataset holds one-hot labeled rows, the one-hot block preceding the
    observation, as produced by datasets.load_data_with_softmax. Given
    overfitting_sets use the same layout.

    The lower RBMs are trained without supervision on the observations, the
    top CRBM is trained on [one-hot label | final representation].

    :param cdbn: CDBN to train
    :param dataset: array_like, shape (n_samples, classes + layers[0])
    :param params: dict of hyper-parameters, see train_dbn and train_rbm
    :return: trained CDBN
    """
    params = utilities.get_params(params, {'mean_field': True,
                                           'overfitting_sets': None})
    generator = utilities.params_generator(params)
    params['generator'] = generator
    dataset = utilities.check_columns(
        utilities.as_tensor(dataset), cdbn.classes + cdbn.layers[0])
    softmaxes = dataset[:, :cdbn.classes]
    data = dataset[:, cdbn.classes:]

    sets = params['overfitting_sets']
    set_labels = set_data = None
    if sets is not None:
        sets = {k: utilities.check_columns(
            utilities.as_tensor(v), cdbn.classes + cdbn.layers[0],
            'overfitting set') for k, v in sets.items()}
        set_labels = {k: v[:, :cdbn.classes] for k, v in sets.items()}
        set_data = {k: v[:, cdbn.classes:] for k, v in sets.items()}

    if len(cdbn.rbms) > 1:
        lower = DBN(cdbn.rbms[:-1], cdbn.layers[:-1])
        lower_params = dict(params, query_final=True,
                            overfitting_sets=set_data)
        lower, xform_data = train_dbn(lower, data, lower_params)
        rbms = lower.rbms
        for r in rbms:
            set_data = transform_overfitting_sets(
                set_data, r, params['mean_field'], generator)
    else:
        rbms, xform_data = [], data

    top_sets = None
    if sets is not None:
        top_sets = {k: tf.concat([set_labels[k], set_data[k]], 1)
                    for k in sets}

    if params.get('verbose'):
        print('Training layer {}...'.format(len(cdbn.rbms)))
    top = rbm_module.train_rbm(
        cdbn.rbms[-1], tf.concat([softmaxes, xform_data], 1),
        dict(params, overfitting_sets=top_sets))
    return cdbn.replace(rbms=rbms + [top])
