# Vybe standard library
# Each module contributes one category of natives to a BuiltinRegistry.
from .console import ConsoleIO, populate_console
from .conversion import populate_conversion
from .strings import populate_strings
from .maths import populate_maths
from .datetime_fns import populate_datetime
from .info import populate_info
from .collections_fns import populate_collections
from .query import populate_query
from .exceptions import populate_exceptions
from .io import HostFileSystem, populate_io


def populate_registry(registry):
    """Install the whole standard library into `registry`."""
    populate_console(registry)
    populate_conversion(registry)
    populate_strings(registry)
    populate_maths(registry)
    populate_datetime(registry)
    populate_info(registry)
    populate_collections(registry)
    populate_query(registry)
    populate_exceptions(registry)
    populate_io(registry)


__all__ = [
    'ConsoleIO',
    'HostFileSystem',
    'populate_registry',
]
