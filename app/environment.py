from enum import Enum


class EnvironmentName(Enum):
    TESTING = "test"
    UNIT_TESTING = "unit_test"
    DEVELOPMENT = "development"
    STAGING = "staging"
    QA = "qa"
    PRODUCTION = "production"

    @property
    def is_local(self) -> bool:
        """Developer machine or test run: readable logs, interactive docs."""
        return self in (EnvironmentName.DEVELOPMENT, EnvironmentName.TESTING, EnvironmentName.UNIT_TESTING)

    @property
    def serves_docs(self) -> bool:
        return self is not EnvironmentName.PRODUCTION
