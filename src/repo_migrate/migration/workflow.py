"""Workflow: origin checkout, transformations and a destination."""

import shutil
from pathlib import Path
from typing import Optional

from loguru import logger

from ..authoring.authoring import Authoring
from ..core.glob import Glob
from ..core.transform import Transformation, TransformWork
from ..git.origin import GitOrigin
from .base import Destination, Migration, TransformResult


class Workflow(Migration):
    """Migrate the tree of one origin change through a transformation."""

    def __init__(
        self,
        name: str,
        origin: GitOrigin,
        destination: Destination,
        authoring: Authoring,
        transformation: Transformation,
        path_filter: Optional[Glob] = None,
    ):
        self.name = name
        self.origin = origin
        self.destination = destination
        self.authoring = authoring
        self.transformation = transformation
        self.path_filter = path_filter or Glob.ALL_FILES
        self.logger = logger.bind(component='Workflow', migration=name)

    def run(self, workdir: Path, source_ref: Optional[str] = None) -> None:
        """Check out source_ref, transform it and write it to the destination.

        The checkout directory is recreated on every run; a failed
        transformation leaves it as it was when the failure happened.
        """
        checkout_dir = Path(workdir) / 'checkout'
        if checkout_dir.exists():
            shutil.rmtree(checkout_dir)
        checkout_dir.mkdir(parents=True)

        reference = self.origin.resolve(source_ref)
        reader = self.origin.new_reader(self.path_filter, self.authoring)
        reader.checkout(reference, checkout_dir)
        change = reader.change(reference)
        self.logger.info(f'Migrating {reference.as_string()}: {change.first_line_message()}')

        self.transformation.transform(TransformWork(checkout_dir, change.message))

        self.destination.write(
            TransformResult(
                path=checkout_dir,
                change=change,
                author=self.authoring.resolve_author(change.author),
                message=change.message,
            )
        )
