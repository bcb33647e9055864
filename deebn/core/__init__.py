"""Deebn core package."""

from .config import *
from .errors import *
from .evaluation import *
from .model import *
