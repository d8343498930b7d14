"""
Anomaly Diagnostics Channel

The analysis functions are pure and synchronous, so they cannot write to
async audit storage themselves. Instead the caller hands them an AnomalyLog;
every anomaly is logged locally the moment it is found and kept so the
service layer can persist it afterwards.

Excluding a record changes the answer, so nothing is ever dropped without
passing through here.
"""

from typing import Iterator, Optional

import structlog

from profiteer.models.report import AnomalyType, DataAnomaly


class AnomalyLog:
    """
    Collects DataAnomaly records reported during a computation.

    Reporting the same anomaly twice (same type, transaction and wallet)
    keeps only the first; one bad record touched by several views of the
    same report shows up once.
    """

    def __init__(self, logger: Optional[structlog.stdlib.BoundLogger] = None):
        self._logger = logger or structlog.get_logger(__name__)
        self._anomalies: list[DataAnomaly] = []
        self._seen: set[tuple] = set()

    def report(self, anomaly: DataAnomaly) -> None:
        key = (anomaly.anomaly_type, anomaly.transaction_id, anomaly.wallet_id)
        if key in self._seen:
            return
        self._seen.add(key)
        self._anomalies.append(anomaly)
        self._logger.warning("data_anomaly", **anomaly.to_log_dict())

    @property
    def anomalies(self) -> list[DataAnomaly]:
        return list(self._anomalies)

    def of_type(self, anomaly_type: AnomalyType) -> list[DataAnomaly]:
        return [a for a in self._anomalies if a.anomaly_type is anomaly_type]

    def transaction_ids(self, excluded_only: bool = False) -> list[str]:
        """Ids of transactions with anomalies, in report order, without repeats."""
        ids = []
        for anomaly in self._anomalies:
            if excluded_only and not anomaly.excluded:
                continue
            if anomaly.transaction_id and anomaly.transaction_id not in ids:
                ids.append(anomaly.transaction_id)
        return ids

    def __len__(self) -> int:
        return len(self._anomalies)

    def __iter__(self) -> Iterator[DataAnomaly]:
        return iter(list(self._anomalies))

    def __bool__(self) -> bool:
        # An empty log is still a valid sink
        return True
