from typing import cast

from dependency_injector import containers, providers

from app.controllers.tracking.tracking_controller import TrackingController
from app.models.base import utcnow
from app.repos.container import RepoContainer


class ControllerContainer(containers.DeclarativeContainer):
    repos: RepoContainer = cast(RepoContainer, providers.DependenciesContainer())

    clock = providers.Object(utcnow)

    tracking_controller = providers.Singleton(
        TrackingController,
        tracked_email_repo=repos.tracked_email,
        email_open_repo=repos.email_open,
        clock=clock,
    )
