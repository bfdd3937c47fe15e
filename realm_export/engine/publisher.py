"""
Secret Publisher — Create-or-replace a single-key secret.

    read(namespace, name)
    ├── found            -> replace (prior keys are dropped, no merge)
    ├── not_found        -> create
    └── transient_error  -> create    (LookupPolicy.CREATE, the default)
                            fail      (LookupPolicy.FAIL)

Last writer wins. There is no resourceVersion check, so two publishers
writing the same name race silently.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from ..adapters.base import SecretStore
from ..errors import PublishError
from ..models.secret import LookupPolicy, SecretRecord
from ..reliability.policy import NO_RETRY, RetryPolicy

logger = logging.getLogger(__name__)


class SecretPublisher:
    """
    Upserts realm exports into a secret store.
    """

    def __init__(
        self,
        store: SecretStore,
        labels: Optional[Mapping[str, str]] = None,
        annotations: Optional[Mapping[str, str]] = None,
        lookup_policy: LookupPolicy = LookupPolicy.CREATE,
        policy: RetryPolicy = NO_RETRY,
    ):
        self.store = store
        self.labels: Dict[str, str] = dict(labels or {})
        self.annotations: Dict[str, str] = dict(annotations or {})
        self.lookup_policy = lookup_policy
        self.policy = policy

    def publish(
        self,
        namespace: str,
        secret_name: str,
        secret_key: str,
        payload: bytes,
    ) -> None:
        """
        Store ``payload`` as the only key of ``namespace/secret_name``.

        Raises:
            PublishError: if the store rejects the write, or the lookup
                failed under LookupPolicy.FAIL
        """
        record = SecretRecord(
            namespace=namespace,
            name=secret_name,
            data={secret_key: payload},
            labels=self.labels,
            annotations=self.annotations,
        )
        self.policy.call(
            lambda: self._upsert(record),
            description=f"publish of {namespace}/{secret_name}",
        )
        logger.info(
            f"Created/replaced secret {namespace}/{secret_name} "
            f"with {len(payload)} bytes in key {secret_key}",
            extra={"secret_name": secret_name},
        )

    def _upsert(self, record: SecretRecord) -> None:
        lookup = self.store.read(record.namespace, record.name)

        if lookup.status == "transient_error":
            if self.lookup_policy == LookupPolicy.FAIL:
                raise PublishError(
                    f"Unable to look up secret {record.namespace}/{record.name}: "
                    f"{lookup.error_message}",
                    status_code=lookup.status_code,
                )
            logger.debug(
                f"Lookup of secret {record.name} failed, treating as absent: "
                f"{lookup.error_message}"
            )

        try:
            if lookup.exists:
                self.store.replace(record)
            else:
                self.store.create(record)
        except PublishError:
            raise
        except Exception as e:
            raise PublishError(
                f"Unable to create/replace secret {record.name}: {e}"
            ) from e
