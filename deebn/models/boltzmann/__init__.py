"""Boltzmann machine models: RBM, CRBM, DBN and CDBN."""
