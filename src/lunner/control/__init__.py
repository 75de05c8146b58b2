"""Control loops - election engine, role watcher and hook dispatch.

Two loops share one LeadershipState:
- LeaderElector (writer): claim transaction every poll interval
- RoleWatcher (reader): hook dispatch on verdict change, every half interval
"""

from lunner.control.election import LeaderElector
from lunner.control.hooks import HookDispatcher, Role
from lunner.control.node import Node, run_node
from lunner.control.watcher import RoleWatcher

__all__ = [
    "HookDispatcher",
    "LeaderElector",
    "Node",
    "Role",
    "RoleWatcher",
    "run_node",
]
