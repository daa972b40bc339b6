from dependency_injector import containers, providers

from app.repos.email_open import EmailOpenRepo
from app.repos.tracked_email import TrackedEmailRepo


class RepoContainer(containers.DeclarativeContainer):
    tracked_email = providers.Singleton(TrackedEmailRepo)
    email_open = providers.Singleton(EmailOpenRepo)
