# expense_calculator/outputs/base.py
from abc import ABC, abstractmethod

class BaseOutput(ABC):
    @abstractmethod
    def write(self, expenses, today=None):
        """Write expenses to the chosen sink and return the path written."""
        pass
