"""Branch migration models."""

from typing import List

from pydantic import BaseModel, Field, field_validator


class MigrationOptions(BaseModel):
    """Per-repository migration settings.

    Branch names are trimmed on construction. Emptiness and source/target
    equality are checked by the orchestrator so that rejection happens before
    any command is issued.
    """

    repository_path: str = Field(..., description='Local repository path')
    repository_remote_name: str = Field(default='origin', description='Git remote')
    repository_identifier: str = Field(..., description='owner/name on GitHub')
    workflows_directory: str = Field(
        default='.github/workflows', description='Workflows directory'
    )
    source_branch: str = Field(..., description='Branch being replaced')
    target_branch: str = Field(..., description='Branch replacing the source')
    push_updates: bool = Field(default=True, description='Push workflow commits')
    enable_debug_logging: bool = Field(
        default=False, description='Log per-step details'
    )

    @field_validator(
        'repository_path',
        'repository_remote_name',
        'repository_identifier',
        'source_branch',
        'target_branch',
    )
    @classmethod
    def strip_value(cls, v):
        """Trim surrounding whitespace."""
        return v.strip()


class WorkflowOutcome(BaseModel):
    """Workflow rewrite results."""

    updated_files: List[str] = Field(
        default_factory=list, description='Changed files in scan order'
    )
    remaining_source_references: bool = Field(
        default=False,
        description='A workflow file still names the source branch after rewriting',
    )


class SafetyStatus(BaseModel):
    """Verdict on deleting the source branch."""

    safe_to_delete: bool = Field(..., description='Source branch may be deleted')
    blocking_reasons: List[str] = Field(
        default_factory=list, description='Reasons deletion is blocked'
    )


class MigrationResult(BaseModel):
    """Observable outcome of migrating one repository."""

    workflow_outcome: WorkflowOutcome = Field(default_factory=WorkflowOutcome)
    pages_configuration_updated: bool = Field(default=False)
    default_branch_updated: bool = Field(default=False)
    retargeted_pull_requests: List[int] = Field(default_factory=list)
    safety_status: SafetyStatus = Field(
        default_factory=lambda: SafetyStatus(safe_to_delete=False)
    )
