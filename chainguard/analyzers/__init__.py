"""Pattern analyzers for Solidity source."""

from chainguard.analyzers.access_control import AccessControlAnalyzer
from chainguard.analyzers.base import BaseAnalyzer
from chainguard.analyzers.gas import GasAnalyzer
from chainguard.analyzers.overflow import OverflowAnalyzer
from chainguard.analyzers.reentrancy import ReentrancyAnalyzer
from chainguard.analyzers.self_destruct import SelfDestructAnalyzer
from chainguard.analyzers.timestamp import TimestampAnalyzer
from chainguard.analyzers.tx_origin import TxOriginAnalyzer
from chainguard.analyzers.unchecked_call import UncheckedCallAnalyzer

# Registry keys, in default run order.
ANALYZER_CLASSES = {
    'reentrancy': ReentrancyAnalyzer,
    'access_control': AccessControlAnalyzer,
    'overflow': OverflowAnalyzer,
    'gas': GasAnalyzer,
    'unchecked_call': UncheckedCallAnalyzer,
    'timestamp': TimestampAnalyzer,
    'tx_origin': TxOriginAnalyzer,
    'self_destruct': SelfDestructAnalyzer,
}

__all__ = [
    'ANALYZER_CLASSES',
    'AccessControlAnalyzer',
    'BaseAnalyzer',
    'GasAnalyzer',
    'OverflowAnalyzer',
    'ReentrancyAnalyzer',
    'SelfDestructAnalyzer',
    'TimestampAnalyzer',
    'TxOriginAnalyzer',
    'UncheckedCallAnalyzer',
]
