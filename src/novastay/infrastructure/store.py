"""
Реализации порта IDocumentStore.

InMemoryDocumentStore - общее хранилище в памяти, которым могут
пользоваться несколько клиентов сразу (так тесты моделируют
конкурентных писателей). JsonFileDocumentStore дополнительно
сохраняет каждую коллекцию в отдельный JSON-файл.
"""

import json
import os
import threading
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..interfaces import (
    CreateGuard,
    Document,
    IDocumentStore,
    ILogger,
    ISupportsConditionalCreate,
    SnapshotListener,
    Unsubscribe,
)
from ..shared_kernel import EntityId, PersistenceError
from .loggers import StdLibLogger

Collection = Dict[EntityId, Document]


class InMemoryDocumentStore(IDocumentStore, ISupportsConditionalCreate):
    """Хранилище документов в памяти с живыми подписками."""

    def __init__(self, logger: Optional[ILogger] = None):
        self._collections: Dict[str, Collection] = {}
        self._listeners: Dict[str, List[SnapshotListener]] = {}
        self._lock = threading.RLock()
        self._pending: List[str] = []
        self._dispatching = False
        self._logger = logger or StdLibLogger("novastay.store")

    # --- Подписки ---

    def subscribe(self, collection: str, listener: SnapshotListener) -> Unsubscribe:
        """Подписывает обработчик и сразу отдает ему текущий снимок."""
        with self._lock:
            self._listeners.setdefault(collection, []).append(listener)

        self._deliver(collection, listener, self.documents(collection))

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(collection, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def documents(self, collection: str) -> List[Document]:
        with self._lock:
            return [deepcopy(doc) for doc in self._collections.get(collection, {}).values()]

    # --- Запись ---

    def create(self, collection: str, doc_id: EntityId, document: Document) -> None:
        with self._lock:
            updated = self._inserted(collection, doc_id, document)
            self._commit_collection(collection, updated)
        self._committed(collection)

    def create_if(
        self,
        collection: str,
        doc_id: EntityId,
        document: Document,
        guard: CreateGuard,
    ) -> None:
        """Создает документ, только если guard не выбросил исключение.

        Guard выполняется под той же блокировкой, что и запись, поэтому
        между проверкой и созданием никто не может вклиниться.
        """
        with self._lock:
            guard(self.documents(collection))
            updated = self._inserted(collection, doc_id, document)
            self._commit_collection(collection, updated)
        self._committed(collection)

    def update(self, collection: str, doc_id: EntityId, fields: Document) -> None:
        with self._lock:
            current = self._collections.get(collection, {})
            if doc_id not in current:
                raise PersistenceError(
                    f"Документ {doc_id} не найден в коллекции {collection}"
                )
            updated = dict(current)
            document = deepcopy(current[doc_id])
            document.update(deepcopy(fields))
            document["id"] = doc_id
            updated[doc_id] = document
            self._commit_collection(collection, updated)
        self._committed(collection)

    def delete(self, collection: str, doc_id: EntityId) -> None:
        with self._lock:
            current = self._collections.get(collection, {})
            if doc_id not in current:
                raise PersistenceError(
                    f"Документ {doc_id} не найден в коллекции {collection}"
                )
            updated = {key: doc for key, doc in current.items() if key != doc_id}
            self._commit_collection(collection, updated)
        self._committed(collection)

    def _inserted(self, collection: str, doc_id: EntityId, document: Document) -> Collection:
        current = self._collections.get(collection, {})
        if doc_id in current:
            raise PersistenceError(
                f"Документ {doc_id} уже существует в коллекции {collection}"
            )
        updated = dict(current)
        updated[doc_id] = {**deepcopy(document), "id": doc_id}
        return updated

    def _commit_collection(self, collection: str, updated: Collection) -> None:
        """Фиксирует новое состояние коллекции (переопределяется для файлов)."""
        self._collections[collection] = updated

    # --- Рассылка снимков ---

    def _committed(self, collection: str) -> None:
        with self._lock:
            if collection not in self._pending:
                self._pending.append(collection)
            if self._dispatching:
                # Запись из обработчика: разошлем после текущего круга
                return
            self._dispatching = True

        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._dispatching = False
                        return
                    name = self._pending.pop(0)
                    listeners = list(self._listeners.get(name, []))
                snapshot = self.documents(name)
                for listener in listeners:
                    self._deliver(name, listener, deepcopy(snapshot))
        except BaseException:
            with self._lock:
                self._dispatching = False
            raise

    def _deliver(
        self, collection: str, listener: SnapshotListener, documents: List[Document]
    ) -> None:
        try:
            listener(documents)
        except Exception as e:
            self._logger.error(
                f"Error in snapshot listener for {collection}",
                error=str(e),
                error_type=type(e).__name__,
            )


class JsonFileDocumentStore(InMemoryDocumentStore):
    """Хранилище, сохраняющее каждую коллекцию в <data_dir>/<collection>.json."""

    def __init__(self, data_dir: Union[str, Path], logger: Optional[ILogger] = None):
        super().__init__(logger)
        self._data_dir = Path(data_dir)
        self._load_data()

    def _file_path(self, collection: str) -> Path:
        return self._data_dir / f"{collection}.json"

    def _load_data(self) -> None:
        """Загружает все коллекции из JSON-файлов."""
        if not self._data_dir.exists():
            return

        for file_path in sorted(self._data_dir.glob("*.json")):
            try:
                raw_data = file_path.read_text(encoding="utf-8")
                items = json.loads(raw_data) if raw_data.strip() else []
                collection = {item["id"]: item for item in items}
            except (OSError, json.JSONDecodeError, KeyError, TypeError) as exc:
                raise PersistenceError(f"Не удалось прочитать {file_path}: {exc!r}") from exc

            self._collections[file_path.stem] = collection

    def _commit_collection(self, collection: str, updated: Collection) -> None:
        # Сначала файл, потом память: при ошибке записи состояние не меняется
        file_path = self._file_path(collection)
        tmp_path = file_path.with_suffix(".json.tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(list(updated.values()), f, indent=2, ensure_ascii=False, default=str)
            os.replace(tmp_path, file_path)
        except OSError as exc:
            raise PersistenceError(f"Не удалось записать {file_path}: {exc}") from exc

        super()._commit_collection(collection, updated)
