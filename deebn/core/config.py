"""Library-wise configurations."""

import errno
import os

import tensorflow as tf

# Every tensor the library creates uses this dtype.
DTYPE = tf.float64


class Config(object):
    """Configuration class."""

    class __Singleton(object):
        """Singleton design pattern."""

        def __init__(self, models_dir='models/', data_dir='data/',
                     logs_dir='logs/'):
            """Constructor.

            Parameters
            ----------
            models_dir : string, optional (default='models/')
                directory path to store trained models.
                Path is relative to ~/.deebn
            data_dir : string, optional (default='data/')
                directory path to store datasets.
                Path is relative to ~/.deebn
            logs_dir : string, optional (default='logs/')
                directory path to store tensorboard summaries.
                Path is relative to ~/.deebn
            """
            self.home_dir = os.path.join(os.path.expanduser("~"), '.deebn')
            self.models_dir = os.path.join(self.home_dir, models_dir)
            self.data_dir = os.path.join(self.home_dir, data_dir)
            self.logs_dir = os.path.join(self.home_dir, logs_dir)
            self.mkdir_p(self.home_dir)
            self.mkdir_p(self.models_dir)
            self.mkdir_p(self.data_dir)
            self.mkdir_p(self.logs_dir)

        def mkdir_p(self, path):
            """Recursively create directories."""
            try:
                os.makedirs(path)
            except OSError as exc:
                if exc.errno == errno.EEXIST and os.path.isdir(path):
                    pass
                else:
                    raise

    instance = None

    def __new__(cls):
        """Return singleton instance."""
        if not Config.instance:
            Config.instance = Config.__Singleton()
        return Config.instance
