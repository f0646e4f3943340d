"""nestforge scaffolder -- produces and extends a new project's file tree.

Quick usage::

    from nestforge.scaffolder import create_collection, PrismaFeature

    collection = create_collection("builtin")
    await collection.execute("application", [("name", "demo")], cwd="/tmp")
    await PrismaFeature().create("/tmp/demo", package_manager="pnpm")
"""

from nestforge.scaffolder.collections import (
    BuiltinCollection,
    Collection,
    GenerationError,
    SchematicsCollection,
    UnknownCollectionError,
    create_collection,
)
from nestforge.scaffolder.features import (
    FeatureError,
    FixturesFeature,
    PrismaFeature,
    UserServiceFeature,
)
from nestforge.scaffolder.templates import TemplateRenderer

__all__ = [
    "BuiltinCollection",
    "Collection",
    "FeatureError",
    "FixturesFeature",
    "GenerationError",
    "PrismaFeature",
    "SchematicsCollection",
    "TemplateRenderer",
    "UnknownCollectionError",
    "UserServiceFeature",
    "create_collection",
]
