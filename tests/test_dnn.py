import numpy as np
import unittest

from deebn.core import model
from deebn.core.errors import InvalidDimension, ShapeMismatch
from deebn.models.boltzmann import dbn, rbm
from deebn.models.feedforward import dnn


def sigmoid(x):
    return 1.0 / (1.0 + np.exp(-x))


def labeled_data(rows, cols, classes, seed=0):
    rng = np.random.RandomState(seed)
    data = rng.randint(0, 2, (rows, cols)).astype(float)
    labels = np.arange(rows) % classes
    return np.hstack([data, labels.reshape(-1, 1)])


class DBNToDNNTest(unittest.TestCase):

    def test_shapes(self):
        deep_net = dbn.build_dbn([6, 5, 4], generator=0)
        net = dnn.dbn_to_dnn(deep_net, 3, generator=1)
        self.assertEqual([tuple(w.shape) for w in net.weights],
                         [(6, 5), (5, 4), (4, 3)])
        self.assertEqual([tuple(b.shape) for b in net.biases],
                         [(5,), (4,), (3,)])
        np.testing.assert_array_equal(net.biases[-1].numpy(), np.zeros(3))
        self.assertEqual(net.layers, [6, 5, 4])
        self.assertEqual(net.classes, 3)

    def test_copies_rbm_weights_and_hidden_biases(self):
        deep_net = dbn.build_dbn([6, 5, 4], generator=0)
        net = dnn.dbn_to_dnn(deep_net, 3, generator=1)
        for r, w, b in zip(deep_net.rbms, net.weights, net.biases):
            np.testing.assert_array_equal(r.W.numpy(), w.numpy())
            np.testing.assert_array_equal(r.hbias.numpy(), b.numpy())

    def test_empty_dbn(self):
        with self.assertRaises(InvalidDimension):
            dnn.dbn_to_dnn(dbn.DBN([], [5]), 3)

    def test_classify_dbn_drops_label_units(self):
        cdbn = dbn.build_classify_dbn([6, 5, 4], 3, generator=0)
        net = dnn.dbn_to_dnn(cdbn, 3, generator=1)
        self.assertEqual([tuple(w.shape) for w in net.weights],
                         [(6, 5), (5, 4), (4, 3)])
        np.testing.assert_array_equal(net.weights[1].numpy(),
                                      cdbn.rbms[-1].W.numpy()[3:])


class DNNTest(unittest.TestCase):

    def setUp(self):
        self.net = dnn.dbn_to_dnn(dbn.build_dbn([6, 5, 4], generator=0), 3,
                                  generator=1)
        self.dataset = labeled_data(20, 6, 3)

    def biased_dnn(self, favorite):
        """ DNN whose output always peaks at `favorite`.
        """
        bias = np.zeros(3)
        bias[favorite] = 5.0
        return self.net.replace(
            weights=self.net.weights[:-1] + [np.zeros((4, 3))],
            biases=self.net.biases[:-1] + [bias])

    def test_invalid_chain(self):
        with self.assertRaises(InvalidDimension):
            dnn.DNN([np.zeros((6, 5)), np.zeros((4, 3))],
                    [np.zeros(5), np.zeros(3)], [6, 5, 4], 3)
        with self.assertRaises(InvalidDimension):
            dnn.DNN([np.zeros((6, 5))], [np.zeros(5)], [6, 5], 3)

    def test_feed_forward(self):
        outputs = dnn.feed_forward(self.dataset[:, :-1], self.net)
        self.assertEqual(len(outputs), 4)
        self.assertEqual([tuple(o.shape) for o in outputs],
                         [(20, 6), (20, 5), (20, 4), (20, 3)])

    def test_train_batch_matches_backpropagation(self):
        lr, lam, observations = 0.5, 0.1, 40
        batch = self.dataset[:8]
        x, labels = batch[:, :-1], batch[:, -1].astype(int)
        target = np.eye(3)[labels]
        ws = [w.numpy() for w in self.net.weights]
        bs = [b.numpy() for b in self.net.biases]

        outs = [x]
        for w, b in zip(ws, bs):
            outs.append(sigmoid(outs[-1].dot(w) + b))
        errs = [outs[-1] - target]
        for i in range(len(ws) - 1, 0, -1):
            errs.insert(0, errs[0].dot(ws[i].T) * outs[i] * (1 - outs[i]))
        decay = 1 - lr * lam / observations
        expected_w = [w * decay - lr / 8 * o.T.dot(e)
                      for w, o, e in zip(ws, outs[:-1], errs)]
        expected_b = [b - lr / 8 * e.sum(0) for b, e in zip(bs, errs)]

        updated, cost = dnn.train_batch(batch, self.net, lr, lam, observations)
        for got, want in zip(updated.weights, expected_w):
            np.testing.assert_allclose(got.numpy(), want, atol=1e-12)
        for got, want in zip(updated.biases, expected_b):
            np.testing.assert_allclose(got.numpy(), want, atol=1e-12)
        self.assertAlmostEqual(
            cost, np.mean(np.sum((outs[-1] - target) ** 2, 1)))

    def test_zero_learning_rate_keeps_the_net(self):
        updated, _ = dnn.train_batch(self.dataset, self.net, 0.0, 0.1, 20)
        for a, b in zip(self.net.weights + self.net.biases,
                        updated.weights + updated.biases):
            np.testing.assert_array_equal(a.numpy(), b.numpy())

    def test_pretrain_top_layer_changes_only_the_output_layer(self):
        params = {'epochs': 2, 'batch_size': 5}
        trained = dnn.pretrain_top_layer(self.net, self.dataset, params)
        for a, b in zip(self.net.weights[:-1] + self.net.biases[:-1],
                        trained.weights[:-1] + trained.biases[:-1]):
            np.testing.assert_array_equal(a.numpy(), b.numpy())
        self.assertFalse(np.allclose(self.net.weights[-1].numpy(),
                                     trained.weights[-1].numpy()))

    def test_train_dnn(self):
        trained = model.train_model(
            self.net, self.dataset,
            {'epochs': 3, 'pretrain_epochs': 1, 'batch_size': 5})
        self.assertIsInstance(trained, dnn.DNN)
        for a, b in zip(self.net.weights, trained.weights):
            self.assertFalse(np.allclose(a.numpy(), b.numpy()))
        error = model.test_model(trained, self.dataset)
        self.assertTrue(0.0 <= error <= 1.0)

    def test_train_dnn_shape_mismatch(self):
        with self.assertRaises(ShapeMismatch):
            dnn.train_dnn(self.net, self.dataset[:, 1:], {'epochs': 1})

    def test_classify(self):
        net = self.biased_dnn(2)
        self.assertEqual(model.classify(net, self.dataset[0, :-1]), 2)
        np.testing.assert_array_equal(net.predict(self.dataset[:, :-1]),
                                      np.full(20, 2))

    def test_test_model_error_rate(self):
        net = self.biased_dnn(1)
        right = np.hstack([self.dataset[:, :-1], np.ones((20, 1))])
        wrong = np.hstack([self.dataset[:, :-1], np.zeros((20, 1))])
        self.assertEqual(net.test_model(right), 0.0)
        self.assertEqual(net.test_model(wrong), 1.0)
        self.assertEqual(net.test_model(np.zeros((0, 7))), 0.0)

    def test_predict_rejects_wrong_width(self):
        with self.assertRaises(ShapeMismatch):
            self.net.predict(np.zeros((2, 5)))


if __name__ == '__main__':
    unittest.main()
