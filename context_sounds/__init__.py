"""
Sons contextuais para chat: decide em tempo real se um efeito sonoro deve tocar.
"""

__version__ = "0.3.0"
