import json
import os
import shutil
import tempfile
import unittest

import numpy as np

from deebn.core import persistence
from deebn.models.boltzmann import dbn, rbm
from deebn.models.feedforward import dnn


class PersistenceTest(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def assertSameTensors(self, a, b):
        np.testing.assert_array_equal(a.numpy(), b.numpy())

    def test_rbm(self):
        r = rbm.build_rbm(5, 3, generator=0)
        path = persistence.save_model(r, os.path.join(self.tmp_dir, 'r.json'))
        loaded = persistence.load_model(path)
        self.assertIs(type(loaded), rbm.RBM)
        self.assertSameTensors(r.W, loaded.W)
        self.assertSameTensors(r.hbias, loaded.hbias)
        self.assertSameTensors(r.W_vel, loaded.W_vel)

    def test_crbm_keeps_classes(self):
        r = rbm.build_crbm(5, 3, 2, generator=0)
        loaded = persistence.loads(persistence.dumps(r))
        self.assertIs(type(loaded), rbm.CRBM)
        self.assertEqual(loaded.classes, 2)
        self.assertSameTensors(r.W, loaded.W)

    def test_cdbn(self):
        cdbn = dbn.build_classify_dbn([6, 5, 4], 3, generator=0)
        loaded = persistence.loads(persistence.dumps(cdbn))
        self.assertIs(type(loaded), dbn.CDBN)
        self.assertEqual(loaded.layers, [6, 5, 4])
        self.assertIsInstance(loaded.rbms[-1], rbm.CRBM)
        for a, b in zip(cdbn.rbms, loaded.rbms):
            self.assertSameTensors(a.W, b.W)

    def test_dnn(self):
        net = dnn.dbn_to_dnn(dbn.build_dbn([6, 5, 4], generator=0), 3,
                             generator=1)
        loaded = persistence.loads(persistence.dumps(net))
        self.assertIs(type(loaded), dnn.DNN)
        self.assertEqual(loaded.classes, 3)
        for a, b in zip(net.weights + net.biases,
                        loaded.weights + loaded.biases):
            self.assertSameTensors(a, b)

    def test_type_tag(self):
        text = persistence.dumps(dbn.build_dbn([4, 3, 2], generator=0))
        self.assertEqual(json.loads(text)['type'], 'deebn.dbn/DBN')

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            persistence.loads(json.dumps({'type': 'deebn.svm/SVM'}))
        with self.assertRaises(TypeError):
            persistence.dumps(object())


if __name__ == '__main__':
    unittest.main()
