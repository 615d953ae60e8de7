# homeledger/migrations/__init__.py
from .versions import SchemaVersion, SCHEMA_VERSIONS, CURRENT_VERSION
from .stages import MigrationStage, StageKind, STAGES
from .engine import MigrationEngine
