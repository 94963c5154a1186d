"""Fixed-lease network optimizer.

Multi-year facility location and transportation assignment: which sites to
lease for the whole planning horizon and how demand is served every year.
"""

__version__ = "0.1.0"
