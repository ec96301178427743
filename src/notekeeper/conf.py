from __future__ import annotations
from dataclasses import dataclass, replace
import os
import os.path
from typing import Callable

STORAGE_DIR_ENV = 'NOTEKEEPER_DIR'


def default_ignore(dirpath: str, filename: str) -> bool:
    return filename.startswith('.')


@dataclass
class NotekeeperConf:
    storage_dir: str = os.path.join('~', '.notekeeper', 'notes')
    """The folder holding one JSON file per note. It is created when the first note is saved.

    The environment variable ``NOTEKEEPER_DIR`` takes precedence over this value when using :meth:`for_user`,
    and the ``--dir`` command-line argument takes precedence over both.
    """

    confirm_delete: bool = True
    """If True, the ``delete`` command asks for confirmation unless ``--force`` is given."""

    log_level: str = 'WARNING'
    """Level for log messages printed to stderr by the command-line interface. ``--verbose`` selects DEBUG."""

    ignore: Callable[[str, str], bool] = default_ignore
    """Use this to indicate files in the storage folder that should not be treated as notes.

    The first argument is the storage folder, and the second argument is the filename. Only files ending in
    ``.json`` are considered in the first place.

    The current default behavior is to ignore all files whose name begins with a period (``.``), which
    includes the temporary files written while saving.
    """

    @classmethod
    def user_config_path(cls) -> str:
        return os.path.expanduser(os.path.join('~', '.notekeeper.conf.py'))

    @classmethod
    def for_user(cls) -> NotekeeperConf:
        """Loads the variable ``conf`` from ``~/.notekeeper.conf.py``, or returns defaults if the file is absent.

        Raises :exc:`Exception` if the file exists but does not define ``conf``.
        """
        path = cls.user_config_path()
        if os.path.exists(path):
            with open(path, 'r') as file:
                conf_script = file.read()
            context = {}
            exec(conf_script, context)
            if 'conf' not in context or not isinstance(context['conf'], cls):
                raise Exception('You need to assign an instance of NotekeeperConf to the variable `conf` '
                                f'in your config file: {path}')
            conf = context['conf']
        else:
            conf = cls()
        if os.environ.get(STORAGE_DIR_ENV):
            conf = replace(conf, storage_dir=os.environ[STORAGE_DIR_ENV])
        return conf

    def standardize(self) -> NotekeeperConf:
        return replace(
            self,
            storage_dir=os.path.abspath(os.path.expanduser(self.storage_dir))
        )

    def instantiate(self):
        from notekeeper.api import Notekeeper
        return Notekeeper(self.standardize())
