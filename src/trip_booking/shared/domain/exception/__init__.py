from .exceptions import (
    BusinessRuleViolationException as BusinessRuleViolationException,
)
from .exceptions import DomainException as DomainException
from .exceptions import DuplicateResourceException as DuplicateResourceException
from .exceptions import OptimisticLockException as OptimisticLockException
from .exceptions import OwnershipException as OwnershipException
from .exceptions import PersistenceException as PersistenceException
from .exceptions import ProviderException as ProviderException
from .exceptions import ResourceNotFoundException as ResourceNotFoundException
from .exceptions import ValidationException as ValidationException
