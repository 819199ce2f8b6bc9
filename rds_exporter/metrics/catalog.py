#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class MetricDefinition:
    cw_name: str  # CloudWatch metric name, also the key of the metric policies
    prometheus_name: str
    prometheus_help: str


def _basic(cw_name: str, prometheus_suffix: str, help_text: str) -> MetricDefinition:
    return MetricDefinition(cw_name, f"aws_rds_{prometheus_suffix}_average", help_text)


# CloudWatch names that the scraper knows how to handle specially.
CPU_UTILIZATION = "CPUUtilization"
ENGINE_UPTIME = "EngineUptime"
FREE_STORAGE_SPACE = "FreeStorageSpace"
TOTAL_MEMORY = "TotalMemory"
TOTAL_STORAGE_SPACE = "TotalStorageSpace"

# Metrics shared with enhanced monitoring are exported under their node_exporter-like names,
# so dashboards built for enhanced monitoring keep working with basic monitoring.
BASIC_METRICS: Tuple[MetricDefinition, ...] = (
    _basic(
        "ActiveTransactions",
        "active_transactions",
        "The average number of current transactions executing on an Aurora database instance every second.",
    ),
    _basic(
        "AuroraBinlogReplicaLag",
        "aurora_binlog_replica_lag",
        "The amount of time a replica DB cluster running on Aurora with MySQL compatibility lags behind the source DB cluster.",
    ),
    _basic(
        "AuroraReplicaLag",
        "aurora_replica_lag",
        "The average lag when replicating updates from the primary instance, in milliseconds.",
    ),
    _basic(
        "AuroraReplicaLagMaximum",
        "aurora_replica_lag_maximum",
        "The maximum amount of lag between the primary instance and each Aurora DB instance in the DB cluster, in milliseconds.",
    ),
    _basic(
        "AuroraReplicaLagMinimum",
        "aurora_replica_lag_minimum",
        "The minimum amount of lag between the primary instance and each Aurora DB instance in the DB cluster, in milliseconds.",
    ),
    _basic(
        "BinLogDiskUsage",
        "bin_log_disk_usage",
        "The amount of disk space occupied by binary logs on the master. Applies to MySQL read replicas. Units: Bytes",
    ),
    _basic(
        "BlockedTransactions",
        "blocked_transactions",
        "The average number of transactions in the database that are blocked per second.",
    ),
    _basic(
        "BufferCacheHitRatio",
        "buffer_cache_hit_ratio",
        "The percentage of requests that are served by the buffer cache.",
    ),
    _basic(
        "BurstBalance",
        "burst_balance",
        "The percent of General Purpose SSD (gp2) burst-bucket I/O credits available. Units: Percent",
    ),
    _basic("CommitLatency", "commit_latency", "The amount of latency for commit operations, in milliseconds."),
    _basic("CommitThroughput", "commit_throughput", "The average number of commit operations per second."),
    _basic(
        "CPUCreditBalance",
        "cpu_credit_balance",
        "[T2 instances] The number of CPU credits available for the instance to burst beyond its base CPU utilization. Units: Count",
    ),
    _basic(
        "CPUCreditUsage",
        "cpu_credit_usage",
        "[T2 instances] The number of CPU credits consumed by the instance. Units: Count",
    ),
    MetricDefinition(CPU_UTILIZATION, "node_cpu_average", "The percentage of CPU utilization. Units: Percent"),
    _basic("DatabaseConnections", "database_connections", "The number of database connections in use. Units: Count"),
    _basic(
        "DDLLatency",
        "ddl_latency",
        "The amount of latency for data definition language (DDL) requests, in milliseconds.",
    ),
    _basic("DDLThroughput", "ddl_throughput", "The average number of DDL requests per second."),
    _basic("Deadlocks", "deadlocks", "The average number of deadlocks in the database per second."),
    _basic("DeleteLatency", "delete_latency", "The amount of latency for delete queries, in milliseconds."),
    _basic("DeleteThroughput", "delete_throughput", "The average number of delete queries per second."),
    _basic(
        "DiskQueueDepth",
        "disk_queue_depth",
        "The number of outstanding IOs (read/write requests) waiting to access the disk. Units: Count",
    ),
    _basic("DMLLatency", "dml_latency", "The amount of latency for inserts, updates, and deletes, in milliseconds."),
    _basic("DMLThroughput", "dml_throughput", "The average number of inserts, updates, and deletes per second."),
    MetricDefinition(
        ENGINE_UPTIME,
        "node_boot_time",
        "The timestamp of the last engine start, derived from the engine uptime. Units: Seconds",
    ),
    _basic("FreeableMemory", "freeable_memory", "The amount of available random access memory. Units: Bytes"),
    _basic(
        "FreeLocalStorage",
        "free_local_storage",
        "The amount of storage available for temporary tables and logs, in bytes.",
    ),
    MetricDefinition(FREE_STORAGE_SPACE, "node_filesystem_free", "The amount of available storage space. Units: Bytes"),
    _basic("InsertLatency", "insert_latency", "The amount of latency for insert queries, in milliseconds."),
    _basic("InsertThroughput", "insert_throughput", "The average number of insert queries per second."),
    _basic("LoginFailures", "login_failures", "The average number of failed login attempts per second."),
    _basic(
        "MaximumUsedTransactionIDs",
        "maximum_used_transaction_ids",
        "The maximum transaction ID that has been used. Applies to PostgreSQL.",
    ),
    _basic(
        "NetworkReceiveThroughput",
        "network_receive_throughput",
        "The incoming (Receive) network traffic on the DB instance, including both customer database traffic and Amazon RDS traffic used for monitoring and replication. Units: Bytes/second",
    ),
    _basic(
        "NetworkThroughput",
        "network_throughput",
        "The amount of network throughput both received from and transmitted to clients by each instance in the Aurora MySQL DB cluster, in bytes per second.",
    ),
    _basic(
        "NetworkTransmitThroughput",
        "network_transmit_throughput",
        "The outgoing (Transmit) network traffic on the DB instance, including both customer database traffic and Amazon RDS traffic used for monitoring and replication. Units: Bytes/second",
    ),
    _basic(
        "OldestReplicationSlotLag",
        "oldest_replication_slot_lag",
        "The lagging size of the replica lagging the most in terms of WAL data received. Applies to PostgreSQL.",
    ),
    _basic("Queries", "queries", "The average number of queries executed per second."),
    _basic("ReadIOPS", "read_iops", "The average number of disk I/O operations per second. Units: Count/Second"),
    _basic("ReadLatency", "read_latency", "The average amount of time taken per disk I/O operation. Units: Seconds"),
    _basic(
        "ReadThroughput",
        "read_throughput",
        "The average number of bytes read from disk per second. Units: Bytes/Second",
    ),
    _basic(
        "ReplicaLag",
        "replica_lag",
        "The amount of time a Read Replica DB Instance lags behind the source DB Instance. Applies to MySQL, MariaDB, and PostgreSQL Read Replicas. Units: Seconds",
    ),
    _basic(
        "ReplicationSlotDiskUsage",
        "replication_slot_disk_usage",
        "The disk space used by replication slot files. Applies to PostgreSQL.",
    ),
    _basic(
        "ResultSetCacheHitRatio",
        "result_set_cache_hit_ratio",
        "The percentage of requests that are served by the Resultset cache.",
    ),
    _basic("SelectLatency", "select_latency", "The amount of latency for select queries, in milliseconds."),
    _basic("SelectThroughput", "select_throughput", "The average number of select queries per second."),
    _basic("SwapUsage", "swap_usage", "The amount of swap space used on the DB Instance. Units: Bytes"),
    _basic(
        "TransactionLogsDiskUsage",
        "transaction_logs_disk_usage",
        "The disk space used by transaction logs. Applies to PostgreSQL.",
    ),
    _basic(
        "TransactionLogsGeneration",
        "transaction_logs_generation",
        "The size of transaction logs generated per second. Applies to PostgreSQL.",
    ),
    _basic("UpdateLatency", "update_latency", "The amount of latency for update queries, in milliseconds."),
    _basic("UpdateThroughput", "update_throughput", "The average number of update queries per second."),
    _basic("VolumeBytesUsed", "volume_bytes_used", "The amount of storage used by your Aurora DB instance, in bytes."),
    _basic(
        "VolumeReadIOPs",
        "volume_read_iops",
        "The number of billed read I/O operations from a cluster volume, reported at 5-minute intervals.",
    ),
    _basic(
        "VolumeWriteIOPs",
        "volume_write_iops",
        "The number of write disk I/O operations to the cluster volume, reported at 5-minute intervals.",
    ),
    _basic("WriteIOPS", "write_iops", "The average number of disk I/O operations per second. Units: Count/Second"),
    _basic("WriteLatency", "write_latency", "The average amount of time taken per disk I/O operation. Units: Seconds"),
    _basic(
        "WriteThroughput",
        "write_throughput",
        "The average number of bytes written to disk per second. Units: Bytes/Second",
    ),
    MetricDefinition(
        TOTAL_MEMORY,
        "node_memory_MemTotal",
        "The total amount of memory of the instance class. Units: Bytes",
    ),
    MetricDefinition(
        TOTAL_STORAGE_SPACE,
        "node_filesystem_size",
        "The total amount of allocated storage space. Units: Bytes",
    ),
)
