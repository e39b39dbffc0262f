"""
Utility modules for ConvoKeep.
"""

from .ids import generate_unique_id, create_sequential_id_generator

__all__ = ['generate_unique_id', 'create_sequential_id_generator']
