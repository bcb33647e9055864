"""Train and test a CRBM, a classification DBN or a DBN refined into a DNN.

Datasets are comma-separated files in the MNIST CSV layout (label first,
pixels in [0, 255]).

    python command_line/run_dbn.py --model=dnn --layers=784,500,250 \
        --train_dataset=data/mnist_train.csv --test_dataset=data/mnist_test.csv
"""

from absl import app
from absl import flags

from deebn.core import model
from deebn.core.cross_validation import k_fold_cross_validation, \
    k_fold_cross_validation_dnn
from deebn.core.persistence import save_model
from deebn.models.boltzmann import dbn, rbm
from deebn.models.feedforward import dnn
from deebn.utils import datasets, utilities

# #################### #
#   Flags definition   #
# #################### #
FLAGS = flags.FLAGS

# Global configuration
flags.DEFINE_enum('model', 'dnn', ['crbm', 'cdbn', 'dnn'], 'Which model to train.')
flags.DEFINE_string('train_dataset', '', 'Path to the train set .csv file, or its name in the data dir (~/.deebn/data).')
flags.DEFINE_string('test_dataset', '', 'Path to the test set .csv file, or its name in the data dir.')
flags.DEFINE_string('save_path', '', 'Path to save the trained model to. Default: models dir.')
flags.DEFINE_integer('classes', 10, 'Number of classes.')
flags.DEFINE_integer('seed', -1, 'Seed for the random generator (>= 0). Useful for testing hyperparameters.')
flags.DEFINE_integer('cv_folds', 0, 'If > 0, report k-fold cross-validation errors on the train set instead.')
flags.DEFINE_integer('verbose', 1, 'Level of verbosity. 0 - silent, 1 - progress bars.')
flags.DEFINE_boolean('summary', False, 'Whether to write tensorboard summaries.')
# RBMs layers specific parameters
flags.DEFINE_string('layers', '784,500,250', 'Comma-separated sizes of the layers, starting with the visible layer.')
flags.DEFINE_integer('hidden', 500, 'Hidden units of the crbm model.')
flags.DEFINE_float('rbm_learning_rate', 0.1, 'Learning rate.')
flags.DEFINE_float('rbm_initial_momentum', 0.5, 'Momentum for the first epochs.')
flags.DEFINE_float('rbm_momentum', 0.9, 'Momentum after momentum_delay epochs.')
flags.DEFINE_integer('rbm_momentum_delay', 3, 'Epochs trained with the initial momentum.')
flags.DEFINE_integer('rbm_batch_size', 10, 'Size of each mini-batch.')
flags.DEFINE_integer('rbm_num_epochs', 100, 'Maximum number of epochs.')
flags.DEFINE_integer('rbm_gap_delay', 10, 'Epoch at which early stopping becomes eligible.')
flags.DEFINE_integer('rbm_gap_stop_delay', 2, 'Consecutive free energy gap increases that stop training.')
# Supervised fine tuning parameters
flags.DEFINE_float('finetune_learning_rate', 0.5, 'Learning rate.')
flags.DEFINE_float('finetune_lambda', 0.1, 'L2 weight decay coefficient.')
flags.DEFINE_integer('finetune_num_epochs', 100, 'Number of epochs.')
flags.DEFINE_integer('finetune_batch_size', 100, 'Size of each mini-batch.')


def rbm_params():
    return {
        'learning_rate': FLAGS.rbm_learning_rate,
        'initial_momentum': FLAGS.rbm_initial_momentum,
        'momentum': FLAGS.rbm_momentum,
        'momentum_delay': FLAGS.rbm_momentum_delay,
        'batch_size': FLAGS.rbm_batch_size,
        'epochs': FLAGS.rbm_num_epochs,
        'gap_delay': FLAGS.rbm_gap_delay,
        'gap_stop_delay': FLAGS.rbm_gap_stop_delay,
        'verbose': FLAGS.verbose,
        'summary': FLAGS.summary,
    }


def finetune_params():
    return {
        'learning_rate': FLAGS.finetune_learning_rate,
        'lambda': FLAGS.finetune_lambda,
        'epochs': FLAGS.finetune_num_epochs,
        'batch_size': FLAGS.finetune_batch_size,
        'verbose': FLAGS.verbose,
        'summary': FLAGS.summary,
    }


def main(argv):
    del argv

    generator = utilities.get_generator(FLAGS.seed if FLAGS.seed >= 0 else None)
    layers = utilities.flag_to_list(FLAGS.layers, 'int')
    params = dict(rbm_params(), generator=generator)

    if FLAGS.model == 'crbm':
        m = rbm.build_crbm(layers[0], FLAGS.hidden, FLAGS.classes, generator)
        train_set = datasets.load_data_with_softmax(FLAGS.train_dataset, FLAGS.classes)
    elif FLAGS.model == 'cdbn':
        m = dbn.build_classify_dbn(layers, FLAGS.classes, generator)
        train_set = datasets.load_data_with_softmax(FLAGS.train_dataset, FLAGS.classes)
    else:
        m = dbn.build_dbn(layers, generator)
        train_set = datasets.load_data_sans_label(FLAGS.train_dataset)

    if FLAGS.cv_folds > 0:
        labeled = datasets.load_data(FLAGS.train_dataset)
        if FLAGS.model == 'dnn':
            # both training stages share the rbm hyper-parameters here
            errors = k_fold_cross_validation_dnn(
                m, train_set, labeled, params, FLAGS.cv_folds, FLAGS.classes)
        else:
            errors = k_fold_cross_validation(
                m, train_set, labeled, params, FLAGS.cv_folds)
        print('Cross-validation errors: {}'.format(errors))
        return

    m = model.train_model(m, train_set, params)

    if FLAGS.model == 'dnn':
        print('Start deep neural net finetuning...')
        m = dnn.dbn_to_dnn(m, FLAGS.classes, generator)
        m = model.train_model(
            m, datasets.load_data(FLAGS.train_dataset), finetune_params())

    print('Model saved to {}'.format(save_model(m, FLAGS.save_path or None)))

    if FLAGS.test_dataset:
        test_set = datasets.load_data(FLAGS.test_dataset)
        print('Test set error rate: {}'.format(model.test_model(m, test_set)))


if __name__ == '__main__':
    app.run(main)
