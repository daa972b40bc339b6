from typing import cast

from dependency_injector import containers, providers

from app.controllers.container import ControllerContainer
from app.database import DatabaseManager
from app.repos.container import RepoContainer

# Packages whose endpoints use Provide[...] markers
WIRED_PACKAGES = ["app.api.endpoints"]


class ApplicationContainer(containers.DeclarativeContainer):
    database_manager = providers.Factory(DatabaseManager)

    repos: RepoContainer = cast(RepoContainer, providers.Container(RepoContainer))
    controllers: ControllerContainer = cast(ControllerContainer, providers.Container(ControllerContainer, repos=repos))


def get_wire_container() -> ApplicationContainer:
    """Container wired into the HTTP endpoints; main.py and the tests each build one."""
    application_container = ApplicationContainer()
    application_container.wire(packages=WIRED_PACKAGES)
    return application_container
