"""Bot package initialization"""
from .filters import InView
from .handlers import router

__all__ = ['router', 'InView']
