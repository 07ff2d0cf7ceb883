"""
Diamond DAO Exceptions

Package-wide exception root. Governance-specific errors live next to the
governance code and all derive from DiamondDAOException.
"""


class DiamondDAOException(Exception):
    """Base exception for Diamond DAO."""
    pass


class InvalidAddressError(DiamondDAOException):
    """Invalid address format."""
    pass


class ConfigurationError(DiamondDAOException):
    """Configuration error."""
    pass


class StateFileError(DiamondDAOException):
    """Persisted state could not be read or written."""
    pass
