"""Shared test fixtures for dbconventions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dbconventions.model import EntityDescriptor, MappingContext, PropertyDescriptor, PropertyKind

if TYPE_CHECKING:
    from pathlib import Path


SAMPLE_MODEL_YAML = """\
contexts:
  - name: SampleContext
    entities:
      - name: User
        table: Users
        properties:
          - { name: UserId, kind: integer, primary_key: true }
          - { name: Name, kind: string, max_length: 100 }
          - { name: Email, kind: string, max_length: 255 }
          - { name: IsActive, kind: boolean }
          - { name: CreatedDate, kind: datetime }
          - { name: ModifiedDate, kind: datetime, nullable: true }
          - { name: RoleType, kind: enum }
      - name: BlogPost
        table: BlogPosts
        properties:
          - { name: BlogPostId, kind: integer, primary_key: true }
          - { name: Title, kind: string, max_length: 200 }
          - { name: Content, kind: string, max_length: 5000 }
          - { name: PublishedDate, kind: datetime }
          - { name: IsPublished, kind: boolean }
          - { name: AuthorId, kind: integer, foreign_key: true }
      - name: Comment
        table: Comments
        properties:
          - { name: CommentId, kind: integer, primary_key: true }
          - { name: Text, kind: string, max_length: 1000 }
          - { name: CreatedDate, kind: datetime }
          - { name: BlogPostId, kind: integer, foreign_key: true }
          - { name: AuthorId, kind: integer, foreign_key: true }
"""


def _user() -> EntityDescriptor:
    return EntityDescriptor(
        name="User",
        table_name="Users",
        properties=(
            PropertyDescriptor("UserId", PropertyKind.INTEGER, is_primary_key=True),
            PropertyDescriptor("Name", PropertyKind.STRING, max_length=100),
            PropertyDescriptor("Email", PropertyKind.STRING, max_length=255),
            PropertyDescriptor("IsActive", PropertyKind.BOOLEAN),
            PropertyDescriptor("CreatedDate", PropertyKind.DATETIME),
            PropertyDescriptor("ModifiedDate", PropertyKind.DATETIME, nullable=True),
            PropertyDescriptor("RoleType", PropertyKind.ENUM),
        ),
    )


def _blog_post() -> EntityDescriptor:
    return EntityDescriptor(
        name="BlogPost",
        table_name="BlogPosts",
        properties=(
            PropertyDescriptor("BlogPostId", PropertyKind.INTEGER, is_primary_key=True),
            PropertyDescriptor("Title", PropertyKind.STRING, max_length=200),
            PropertyDescriptor("Content", PropertyKind.STRING, max_length=5000),
            PropertyDescriptor("PublishedDate", PropertyKind.DATETIME),
            PropertyDescriptor("IsPublished", PropertyKind.BOOLEAN),
            PropertyDescriptor("AuthorId", PropertyKind.INTEGER, is_foreign_key=True),
        ),
    )


def _comment() -> EntityDescriptor:
    return EntityDescriptor(
        name="Comment",
        table_name="Comments",
        properties=(
            PropertyDescriptor("CommentId", PropertyKind.INTEGER, is_primary_key=True),
            PropertyDescriptor("Text", PropertyKind.STRING, max_length=1000),
            PropertyDescriptor("CreatedDate", PropertyKind.DATETIME),
            PropertyDescriptor("BlogPostId", PropertyKind.INTEGER, is_foreign_key=True),
            PropertyDescriptor("AuthorId", PropertyKind.INTEGER, is_foreign_key=True),
        ),
    )


@pytest.fixture()
def sample_context() -> MappingContext:
    """A context where every entity follows every convention."""
    return MappingContext("SampleContext", (_user(), _blog_post(), _comment()))


@pytest.fixture()
def sample_model_path(tmp_path: Path) -> Path:
    """Write the compliant sample model as YAML and return its path."""
    path = tmp_path / "model.yml"
    path.write_text(SAMPLE_MODEL_YAML)
    return path
