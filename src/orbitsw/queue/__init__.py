"""Durable offline mutation queue.

:class:`MutationQueue` stores write requests that failed at the network
layer so the worker can replay them when connectivity returns.
"""

from orbitsw.queue.mutation_queue import MutationQueue

__all__ = ["MutationQueue"]
