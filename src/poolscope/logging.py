import logging

"""
Create a global logger instance. The analyzer uses it unless a logger is passed explicitly.
"""

logger = logging.getLogger(__name__)
logger.propagate = False
logger.setLevel(logging.INFO)
logger.addHandler(logging.StreamHandler())
