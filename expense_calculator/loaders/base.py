# expense_calculator/loaders/base.py
from abc import ABC, abstractmethod

class BaseLoader(ABC):
    @abstractmethod
    def load(self, file_path: str):
        """
        Yield ExpenseDraft instances read from file_path.
        """
        pass
