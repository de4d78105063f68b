"""Connection adapters implementing ``rowbind.core.protocols.Connection``.

The driver for each adapter is an optional extra and is imported lazily::

    pip install rowbind[mysql]
"""

from rowbind.adapters.mysql import MySQLConnection, MySQLStatement

__all__ = ["MySQLConnection", "MySQLStatement"]
