"""Deep Belief Networks built from Restricted Boltzmann Machines."""

__version__ = '0.1.0'
