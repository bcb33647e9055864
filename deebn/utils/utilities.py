"""Utitilies module."""

import numpy as np
import tensorflow as tf

from deebn.core.config import DTYPE
from deebn.core.errors import InvalidDimension, NumericInstability, \
    ShapeMismatch

# sigmoid(+-30) is still strictly inside (0, 1) in float64.
SIGMOID_CLIP = 30.0

# ################### #
#   Network helpers   #
# ################### #


def sigmoid(x):
    """Element-wise logistic function 1 / (1 + exp(-x)).

    The input is clipped to [-SIGMOID_CLIP, SIGMOID_CLIP] so the output
    never saturates to exactly 0 or 1.

    :param x: tensor of activations
    :return: tensor of probabilities
    """
    out = tf.nn.sigmoid(tf.clip_by_value(x, -SIGMOID_CLIP, SIGMOID_CLIP))
    check_finite(out, 'sigmoid')
    return out


def check_finite(tensor, name):
    """Raise NumericInstability if the tensor holds NaN or inf values."""
    if not bool(tf.reduce_all(tf.math.is_finite(tensor))):
        raise NumericInstability('{} produced non-finite values'.format(name))
    return tensor


def sample_prob(probs, generator):
    """Get samples from a tensor of probabilities.

    :param probs: tensor of probabilities
    :param generator: tf.random.Generator used to draw the uniform noise
    :return: binary sample of probabilities
    """
    rand = generator.uniform(tf.shape(probs), dtype=probs.dtype)
    return tf.nn.relu(tf.sign(probs - rand))


def get_generator(seed=None):
    """Return a tf.random.Generator.

    :param seed: None (non deterministic generator), an integer seed or
        a tf.random.Generator, returned as is
    :return: tf.random.Generator
    """
    if isinstance(seed, tf.random.Generator):
        return seed
    if seed is None:
        return tf.random.Generator.from_non_deterministic_state()
    return tf.random.Generator.from_seed(seed)


def params_generator(params):
    """Get the generator of a params dict ('generator' first, then 'seed')."""
    if params.get('generator') is not None:
        return get_generator(params['generator'])
    return get_generator(params.get('seed'))


def random_permutation(n, generator):
    """Random permutation of range(n) as a numpy array."""
    if n == 0:
        return np.zeros(0, dtype=np.int64)
    return tf.argsort(generator.uniform([n], dtype=DTYPE)).numpy()


# ################ #
#   Data helpers   #
# ################ #


def to_tensor(x):
    """Convert array_like x to a tensor of the library dtype, same shape."""
    if isinstance(x, tf.Tensor):
        return tf.cast(x, DTYPE)
    return tf.convert_to_tensor(np.asarray(x, dtype=np.float64))


def as_tensor(data):
    """Convert array_like data to a 2-D tensor of the library dtype.

    A single observation (1-D) becomes a one row matrix.
    """
    data = to_tensor(data)
    if len(data.shape) == 1:
        return tf.reshape(data, [1, -1])
    return data


def is_single(x):
    """True if x is a single observation (1-D) rather than a matrix."""
    return len(x.shape if hasattr(x, 'shape') else np.shape(x)) == 1


def check_dimension(n, name='dimension'):
    """Return n as an int, raise InvalidDimension unless it is a positive
    integer."""
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n <= 0:
        raise InvalidDimension(
            '{} must be a positive integer, got {!r}'.format(name, n))
    return int(n)


def num_rows(data):
    """Number of rows of a tensor or array."""
    return int(data.shape[0])


def num_columns(data):
    """Number of columns of a tensor or array."""
    return int(data.shape[1])


def check_columns(data, expected, what='dataset'):
    """Raise ShapeMismatch unless data has exactly `expected` columns."""
    got = num_columns(data)
    if got != expected:
        raise ShapeMismatch(expected, got, what)
    return data


def gen_batches(data, batch_size):
    """Divide input data into contiguous batches.

    The last batch is shorter when the row count is not a multiple of
    batch_size.

    :param data: input data
    :param batch_size: size of each batch
    :return: data divided into batches
    """
    for i in range(0, num_rows(data), batch_size):
        yield data[i:i + batch_size]


def split_labels(dataset):
    """Split a [data | class index] matrix into data and integer labels.

    :param dataset: tensor or array_like, label in the last column
    :return: tuple(data tensor, labels as numpy int64 array)
    """
    dataset = as_tensor(dataset)
    labels = np.rint(dataset[:, -1].numpy()).astype(np.int64)
    return dataset[:, :-1], labels


def gen_softmax(label, num_classes):
    """Generate a one-hot vector representing class `label`.

    gen_softmax(2, 5) -> [0, 0, 1, 0, 0]
    """
    out = np.zeros(num_classes)
    out[int(label)] = 1
    return out


def to_one_hot(labels, num_classes=None):
    """Convert the vector of labels into one-hot encoding.

    :param labels: vector of class indices
    :param num_classes: number of classes, default 1 + max(labels)
    :return: one-hot encoded labels, shape (len(labels), num_classes)
    """
    labels = np.asarray(labels).astype(np.int64)
    nc = num_classes if num_classes is not None else 1 + np.max(labels)
    onehot = np.zeros((len(labels), nc))
    onehot[np.arange(len(labels)), labels] = 1
    return onehot


def softmax_from_obv(x, num_classes):
    """Replace the trailing label of an observation with a leading
    one-hot block: [data | label] -> [one-hot | data]."""
    x = np.asarray(x, dtype=np.float64)
    return np.concatenate([gen_softmax(x[-1], num_classes), x[:-1]])


def get_params(params, defaults):
    """Fill the keys missing from `params` with `defaults`.

    Keys that are not in `defaults` are kept and ignored by the callers.
    """
    out = dict(defaults)
    if params:
        out.update(params)
    return out


# ############# #
#   Utilities   #
# ############# #


def flag_to_list(flagval, flagtype):
    """Convert a string of comma-separated flags to a list of values."""
    if flagtype == 'int':
        return [int(_) for _ in flagval.split(',') if _]

    elif flagtype == 'float':
        return [float(_) for _ in flagval.split(',') if _]

    elif flagtype == 'str':
        return [_ for _ in flagval.split(',') if _]

    else:
        raise Exception("incorrect type")
