import os
import shutil
import tempfile
import unittest
from unittest import mock

import numpy as np

from deebn.utils import datasets


class DatasetsTest(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp_dir, 'digits.csv')
        with open(self.path, 'w') as f:
            f.write('2,0,255,51\n0,102,0,255\n')

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_load_data(self):
        data = datasets.load_data(self.path)
        np.testing.assert_allclose(
            data, [[0, 1, 0.2, 2], [0.4, 0, 1, 0]])

    def test_load_data_label_last(self):
        data = datasets.load_data(self.path, label_first=False, scale=1.0)
        np.testing.assert_allclose(data, [[2, 0, 255, 51], [0, 102, 0, 255]])

    def test_load_data_sans_label(self):
        data = datasets.load_data_sans_label(self.path)
        np.testing.assert_allclose(data, [[0, 1, 0.2], [0.4, 0, 1]])

    def test_load_data_with_softmax(self):
        data = datasets.load_data_with_softmax(self.path, classes=3)
        np.testing.assert_allclose(
            data, [[0, 0, 1, 0, 1, 0.2], [1, 0, 0, 0.4, 0, 1]])

    def test_dataset_path_falls_back_to_data_dir(self):
        self.assertEqual(datasets.dataset_path(self.path), self.path)
        self.assertEqual(
            datasets.dataset_path('digits.csv', data_dir=self.tmp_dir),
            self.path)

    def test_load_data_by_name_from_data_dir(self):
        config = mock.Mock(data_dir=self.tmp_dir)
        with mock.patch.object(datasets, 'Config', return_value=config):
            data = datasets.load_data('digits.csv')
        self.assertEqual(data.shape, (2, 4))

    def test_single_row_file(self):
        with open(self.path, 'w') as f:
            f.write('1,255,0\n')
        self.assertEqual(datasets.load_data(self.path).shape, (1, 3))


if __name__ == '__main__':
    unittest.main()
