"""
Scene and view storage.

A scene is an ordered list of views. Each view holds named byte buffers
("embeddings"), one of which is usually the encoded source photograph, and
is persisted to its own HDF5 file so views can be saved independently from
parallel workers.
"""

import os
import logging
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Union

from ..utils.io import (
    decode_image,
    encode_image,
    load_image,
    read_embedding,
    read_view_header,
    write_view_file,
)

logger = logging.getLogger(__name__)

VIEW_FILE_TEMPLATE = "view_{:04d}.h5"


class View:
    """
    A single photograph plus its named embeddings.

    Embeddings are loaded from the view file on first access and kept in
    memory until ``cache_cleanup`` is called. Decoded images are cached
    separately. Embeddings written with ``set_data`` stay in memory until the
    view is saved.
    """

    def __init__(self, view_id: int, path: Optional[Union[str, Path]] = None,
                 name: Optional[str] = None):
        self.id = view_id
        self.path = Path(path) if path is not None else None
        self.name = name
        self._data: Dict[str, bytes] = {}
        self._dirty: Set[str] = set()
        self._stored: Set[str] = set()
        self._images: Dict[str, np.ndarray] = {}

    @classmethod
    def load(cls, path: Union[str, Path]) -> "View":
        """Open a view file. Embedding data is read lazily."""
        header = read_view_header(path)
        view = cls(header['view_id'], path=path, name=header['name'])
        view._stored = set(header['embeddings'])
        return view

    def __repr__(self) -> str:
        return f"View(id={self.id}, name={self.name!r}, path={self.path})"

    def embedding_names(self) -> List[str]:
        return sorted(self._stored | set(self._data))

    def has_data_embedding(self, name: str) -> bool:
        if not name:
            return False
        return name in self._data or name in self._stored

    def get_data(self, name: str) -> bytes:
        """
        Return the bytes of an embedding.

        Raises:
            KeyError: If the view has no embedding with this name
        """
        if name in self._data:
            return self._data[name]
        if name in self._stored and self.path is not None:
            data = read_embedding(self.path, name)
            self._data[name] = data
            return data
        raise KeyError(f"View {self.id} has no embedding '{name}'")

    def set_data(self, name: str, data: bytes):
        if not name or '/' in name:
            raise ValueError(f"Invalid embedding name: {name!r}")
        self._data[name] = bytes(data)
        self._dirty.add(name)
        self._images.pop(name, None)

    def get_byte_image(self, name: str) -> np.ndarray:
        """
        Return the decoded RGB image stored under an embedding.

        Raises:
            KeyError: If the embedding does not exist
            ValueError: If the embedding is not a decodable image
        """
        if name not in self._images:
            self._images[name] = decode_image(self.get_data(name))
        return self._images[name]

    def set_image(self, name: str, image: np.ndarray):
        """Store an RGB image under an embedding, PNG encoded."""
        self.set_data(name, encode_image(image))
        self._images[name] = image

    def is_dirty(self) -> bool:
        return bool(self._dirty)

    def save_view_file(self):
        """
        Persist all embeddings of this view to its file.

        Raises:
            RuntimeError: If the view has no file path
        """
        if self.path is None:
            raise RuntimeError(f"View {self.id} has no file path, cannot save")

        embeddings = {key: self.get_data(key) for key in self.embedding_names()}
        write_view_file(self.path, self.id, embeddings, name=self.name)
        self._stored = set(embeddings)
        self._dirty.clear()

    def cache_cleanup(self):
        """Release decoded images and embeddings that are already persisted."""
        self._images.clear()
        if self.path is None:
            return
        for key in list(self._data):
            if key not in self._dirty:
                del self._data[key]


class Scene:
    """
    Ordered collection of views.

    View indices are stable: ``views[i]`` is the view with id ``i`` when the
    scene was loaded from disk, and entries may be ``None`` where a view is
    missing.
    """

    def __init__(self, views: Sequence[Optional[View]], path: Optional[Union[str, Path]] = None):
        self._views: List[Optional[View]] = list(views)
        self.path = Path(path) if path is not None else None

    @property
    def views(self) -> List[Optional[View]]:
        return self._views

    def get_views(self) -> List[Optional[View]]:
        return self._views

    def __len__(self) -> int:
        return len(self._views)

    @classmethod
    def load(cls, directory: Union[str, Path]) -> "Scene":
        """
        Load all view files from a scene directory.

        Args:
            directory: Directory containing ``view_XXXX.h5`` files

        Returns:
            Scene whose view list is indexed by view id
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"Scene directory not found: {directory}")

        loaded: Dict[int, View] = {}
        for view_path in sorted(directory.glob("view_*.h5")):
            view = View.load(view_path)
            if view.id in loaded:
                raise ValueError(f"Duplicate view id {view.id} in {directory}")
            loaded[view.id] = view

        num_views = max(loaded) + 1 if loaded else 0
        views = [loaded.get(i) for i in range(num_views)]
        logger.info(f"Loaded scene from {directory}: {len(loaded)} views, "
                    f"{num_views - len(loaded)} missing")
        return cls(views, path=directory)

    @classmethod
    def create_from_images(
        cls,
        image_paths: Sequence[Union[str, Path]],
        directory: Optional[Union[str, Path]] = None,
        image_embedding: str = 'original'
    ) -> "Scene":
        """
        Build a scene with one view per image file.

        Args:
            image_paths: Image files, in view id order
            directory: Scene directory; views are saved there if given
            image_embedding: Embedding name the image bytes are stored under

        Returns:
            New scene
        """
        directory = Path(directory) if directory is not None else None
        views: List[Optional[View]] = []

        for view_id, image_path in enumerate(image_paths):
            view_path = directory / VIEW_FILE_TEMPLATE.format(view_id) if directory else None
            view = View(view_id, path=view_path, name=os.path.basename(str(image_path)))
            view.set_image(image_embedding, load_image(image_path))
            if view_path is not None:
                view.save_view_file()
                view.cache_cleanup()
            views.append(view)

        logger.info(f"Created scene with {len(views)} views")
        return cls(views, path=directory)
