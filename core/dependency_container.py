from typing import Dict, Any, Optional, TypeVar, Callable
from config.app_config import AppConfig
from core.artifact_store import ArtifactStore
from core.jwt_service import JWTService
from core.logging_config import get_logger
from core.process_manager import CommandRunner
from service.auth_service import AuthService
from service.status_gateway import StatusGateway
from service.user_service import UserService
T = TypeVar('T')

class DependencyContainer:
    def __init__(self):
        self._instances: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._config: Optional[AppConfig] = None

    def register_config(self, config: AppConfig) -> None:
        self._config = config
        self._instances['config'] = config
    def register_singleton(self, name: str, factory: Callable[[], T]) -> None:
        self._factories[name] = factory
    def register_instance(self, name: str, instance: Any) -> None:
        self._instances[name] = instance

    def get(self, name: str) -> T:
        if name in self._instances:
            return self._instances[name]
        if name in self._factories:
            instance = self._factories[name]()
            self._instances[name] = instance
            return instance
        raise KeyError(f"Dependency '{name}' not registered")
    def register_core_dependencies(self) -> None:
        self.register_singleton('command_runner', self._create_command_runner)
        self.register_singleton('artifact_store', self._create_artifact_store)
        self.register_singleton('jwt_service', self._create_jwt_service)
    def register_service_dependencies(self) -> None:
        self.register_singleton('user_service', self._create_user_service)
        self.register_singleton('status_gateway', self._create_status_gateway)
        self.register_singleton('auth_service', self._create_auth_service)
    def _create_command_runner(self) -> CommandRunner:
        return CommandRunner(self._config.commands, logger=get_logger('CommandRunner'))
    def _create_artifact_store(self) -> ArtifactStore:
        return ArtifactStore(self._config.paths, logger=get_logger('ArtifactStore'))
    def _create_jwt_service(self) -> JWTService:
        security = self._config.security
        return JWTService.create_service(security.jwt_secret, security.token_expiry_hours)
    def _create_user_service(self) -> UserService:
        return UserService(
            self.get('command_runner'),
            self.get('artifact_store'),
            dialect=self._config.dialect,
            logger=get_logger('UserService')
        )
    def _create_status_gateway(self) -> StatusGateway:
        return StatusGateway(
            self.get('command_runner'),
            service_config=self._config.service,
            paths=self._config.paths,
            dialect=self._config.dialect,
            logger=get_logger('StatusGateway')
        )
    def _create_auth_service(self) -> AuthService:
        return AuthService(
            self._config.security,
            self.get('jwt_service'),
            logger=get_logger('AuthService')
        )
    def cleanup(self) -> None:
        self._instances.clear()
        self._factories.clear()
        self._config = None
_container = DependencyContainer()
def get_container() -> DependencyContainer:
    return _container
def initialize_container(config: AppConfig) -> None:
    container = get_container()
    container.cleanup()
    container.register_config(config)
    container.register_core_dependencies()
    container.register_service_dependencies()
def get_service(service_name: str) -> Any:
    return get_container().get(service_name)
def cleanup_container() -> None:
    get_container().cleanup()
