"""
TaskBoard — Service Container
==============================

What:  Builds every service once, at process start, with its collaborators
       passed in through constructors.
Who:   create_app() stores the result on app.state.services; dependencies in
       taskboard.dependencies hand the pieces to route handlers. The hasher
       and the task store are reached only through the services built on them.

Dependency graph:
    PasswordHasher ─┬─▶ UserDirectory ─▶ CredentialVerifier
                    └──────────────────▶ CredentialVerifier
    SessionIssuer   (secret + TTL from Settings, clock injectable)
    TaskStore ─▶ TaskLifecycleManager
"""

import time
from dataclasses import dataclass

from taskboard.config import Settings
from taskboard.services.credential_verifier import CredentialVerifier
from taskboard.services.passwords import PasswordHasher
from taskboard.services.session_issuer import Clock, SessionIssuer
from taskboard.services.task_lifecycle import TaskLifecycleManager
from taskboard.services.task_store import TaskStore
from taskboard.services.user_directory import UserDirectory


@dataclass(frozen=True)
class ServiceContainer:
    users: UserDirectory
    verifier: CredentialVerifier
    sessions: SessionIssuer
    tasks: TaskLifecycleManager


def build_services(settings: Settings, clock: Clock = time.time) -> ServiceContainer:
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    users = UserDirectory(hasher)
    task_store = TaskStore()
    return ServiceContainer(
        users=users,
        verifier=CredentialVerifier(users, hasher),
        sessions=SessionIssuer(
            secret=settings.session_secret,
            ttl_seconds=settings.session_ttl_seconds,
            algorithm=settings.session_algorithm,
            clock=clock,
        ),
        tasks=TaskLifecycleManager(task_store),
    )
