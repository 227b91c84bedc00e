"""
AWS resource builders: RDS instances, EBS volumes and snapshots, and Elastic
Beanstalk environments.
"""
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from rich.console import Console

from plancost.models.resource import (
    AttributeFilter,
    CostComponent,
    PriceFilter,
    ProductFilter,
    Resource,
    ResourceData,
)
from plancost.resources.registry import RegistryItem
from plancost.usage import sub_usage, to_decimal, usage_quantity

console = Console(stderr=True)

# terraform engine name -> (databaseEngine, databaseEdition)
_DB_ENGINES = {
    "aurora":            ("Aurora MySQL", None),
    "aurora-mysql":      ("Aurora MySQL", None),
    "aurora-postgresql": ("Aurora PostgreSQL", None),
    "mariadb":           ("MariaDB", None),
    "mysql":             ("MySQL", None),
    "postgres":          ("PostgreSQL", None),
    "oracle-se":         ("Oracle", "Standard"),
    "oracle-se1":        ("Oracle", "Standard One"),
    "oracle-se2":        ("Oracle", "Standard Two"),
    "oracle-ee":         ("Oracle", "Enterprise"),
    "sqlserver-ex":      ("SQL Server", "Express"),
    "sqlserver-web":     ("SQL Server", "Web"),
    "sqlserver-se":      ("SQL Server", "Standard"),
    "sqlserver-ee":      ("SQL Server", "Enterprise"),
}

_LICENSE_MODELS = {
    "license-included":       "License included",
    "bring-your-own-license": "Bring your own license",
}

_DB_VOLUME_TYPES = {
    "standard": ("Magnetic", "Storage (magnetic)"),
    "gp2":      ("General Purpose", "Storage (general purpose SSD, gp2)"),
    "gp3":      ("General Purpose-GP3", "Storage (general purpose SSD, gp3)"),
    "io1":      ("Provisioned IOPS", "Storage (provisioned IOPS SSD, io1)"),
}

_EBS_VOLUME_LABELS = {
    "standard": "Storage (magnetic)",
    "gp2":      "Storage (general purpose SSD, gp2)",
    "gp3":      "Storage (general purpose SSD, gp3)",
    "io1":      "Storage (provisioned IOPS SSD, io1)",
    "io2":      "Storage (provisioned IOPS SSD, io2)",
    "st1":      "Storage (throughput optimized HDD, st1)",
    "sc1":      "Storage (cold HDD, sc1)",
}

# instance size suffix -> vCPU count, for Performance Insights retention
_SIZE_VCPUS = {
    "micro": 2, "small": 2, "medium": 2, "large": 2, "xlarge": 4,
    "2xlarge": 8, "4xlarge": 16, "8xlarge": 32, "12xlarge": 48,
    "16xlarge": 64, "24xlarge": 96,
}

_GP3_BASELINE_IOPS = 3000
_GP3_BASELINE_THROUGHPUT = 125


def _product_filter(region: str, service: str, family: str, attrs: List[AttributeFilter]) -> ProductFilter:
    return ProductFilter(
        vendor_name="aws",
        region=region,
        service=service,
        product_family=family,
        attribute_filters=attrs,
    )


def _db_engine(engine: str) -> Tuple[str, Optional[str]]:
    return _DB_ENGINES.get(engine, (engine, None))


def _positive_number(val) -> Optional[Decimal]:
    if val is None or isinstance(val, bool):
        return None
    try:
        num = to_decimal(val)
    except (ArithmeticError, ValueError, TypeError):
        return None
    return num if num.is_finite() and num > 0 else None


def _instance_vcpus(instance_class: str) -> Optional[Decimal]:
    size = instance_class.rsplit(".", 1)[-1]
    vcpus = _SIZE_VCPUS.get(size)
    return Decimal(vcpus) if vcpus is not None else None


def new_db_instance(d: ResourceData, u: Optional[ResourceData]) -> Optional[Resource]:
    region = d.region
    instance_class = d.get("instance_class", "")
    engine = d.get("engine", "")
    multi_az = bool(d.get("multi_az", False))
    deployment = "Multi-AZ" if multi_az else "Single-AZ"
    database_engine, database_edition = _db_engine(engine)

    instance_attrs = [
        AttributeFilter(key="instanceType", value=instance_class),
        AttributeFilter(key="deploymentOption", value=deployment),
        AttributeFilter(key="databaseEngine", value=database_engine),
    ]
    if database_edition:
        instance_attrs.append(AttributeFilter(key="databaseEdition", value=database_edition))
    license_model = _LICENSE_MODELS.get(d.get("license_model", ""))
    if license_model is None and database_engine == "SQL Server":
        license_model = "License included"
    if license_model:
        instance_attrs.append(AttributeFilter(key="licenseModel", value=license_model))

    components = [
        CostComponent(
            name=f"Database instance (on-demand, {deployment}, {instance_class})",
            unit="hours",
            hourly_quantity=Decimal(1),
            product_filter=_product_filter(region, "AmazonRDS", "Database Instance", instance_attrs),
            price_filter=PriceFilter(purchase_option="on_demand"),
        )
    ]

    iops = _positive_number(d.get("iops"))
    storage_type = d.get("storage_type") or ("io1" if iops is not None else "gp2")
    volume_type, storage_label = _DB_VOLUME_TYPES.get(storage_type, _DB_VOLUME_TYPES["gp2"])
    storage_gb = d.get("allocated_storage")
    components.append(CostComponent(
        name=storage_label,
        unit="GB",
        monthly_quantity=to_decimal(storage_gb) if storage_gb is not None else None,
        product_filter=_product_filter(region, "AmazonRDS", "Database Storage", [
            AttributeFilter(key="volumeType", value=volume_type),
            AttributeFilter(key="deploymentOption", value=deployment),
        ]),
    ))

    if storage_type == "io1" and iops is not None:
        components.append(CostComponent(
            name="Provisioned IOPS",
            unit="IOPS",
            monthly_quantity=iops,
            product_filter=_product_filter(region, "AmazonRDS", "Provisioned IOPS", [
                AttributeFilter(key="deploymentOption", value=deployment),
            ]),
        ))

    components.append(CostComponent(
        name="Additional backup storage",
        unit="GB",
        monthly_quantity=usage_quantity(u, "additional_backup_storage_gb"),
        product_filter=_product_filter(region, "AmazonRDS", "Storage Snapshot", [
            AttributeFilter(key="usagetype", value_regex="/ChargedBackupUsage/"),
            AttributeFilter(key="engineCode", value_regex="/[0-9]+/"),
        ]),
        ignore_if_missing_price=True,
    ))

    pi_enabled = bool(d.get("performance_insights_enabled", False))
    if pi_enabled:
        retention = d.get("performance_insights_retention_period", 7)
        try:
            long_term = int(retention) > 7
        except (TypeError, ValueError):
            long_term = False

        if long_term:
            components.append(CostComponent(
                name=f"Performance Insights long term retention ({instance_class})",
                unit="vCPU-month",
                monthly_quantity=_instance_vcpus(instance_class),
                product_filter=_product_filter(region, "AmazonRDS", "Performance Insights", [
                    AttributeFilter(key="usagetype", value_regex="/PI_LTR:/"),
                ]),
            ))

        requests = usage_quantity(u, "monthly_additional_performance_insights_requests")
        components.append(CostComponent(
            name="Performance Insights API",
            unit="1000 requests",
            monthly_quantity=requests / 1000 if requests is not None else None,
            product_filter=_product_filter(region, "AmazonRDS", "Performance Insights", [
                AttributeFilter(key="usagetype", value_regex="/PI_API/"),
            ]),
        ))

    return Resource(name=d.address, resource_type=d.resource_type, cost_components=components)


def _ebs_storage_components(region: str, volume_type: str, size: Optional[Decimal]) -> List[CostComponent]:
    return [CostComponent(
        name=_EBS_VOLUME_LABELS.get(volume_type, f"Storage ({volume_type})"),
        unit="GB",
        monthly_quantity=size,
        product_filter=_product_filter(region, "AmazonEC2", "Storage", [
            AttributeFilter(key="volumeApiName", value=volume_type),
        ]),
    )]


def new_ebs_volume(d: ResourceData, u: Optional[ResourceData]) -> Optional[Resource]:
    region = d.region
    volume_type = d.get("type") or "gp2"
    if volume_type not in _EBS_VOLUME_LABELS:
        console.print(f"[yellow]Warning:[/yellow] skipping {d.address}: unknown volume type {volume_type}")
        return None

    size = d.get("size")
    components = _ebs_storage_components(
        region, volume_type, to_decimal(size) if size is not None else Decimal(8)
    )

    iops = d.get("iops")
    if volume_type in ("io1", "io2") and iops is not None:
        components.append(CostComponent(
            name="Provisioned IOPS",
            unit="IOPS",
            monthly_quantity=to_decimal(iops),
            product_filter=_product_filter(region, "AmazonEC2", "System Operation", [
                AttributeFilter(key="volumeApiName", value=volume_type),
                AttributeFilter(key="usagetype", value_regex="/EBS:VolumeP-IOPS/"),
            ]),
        ))
    elif volume_type == "gp3":
        if iops is not None and int(iops) > _GP3_BASELINE_IOPS:
            components.append(CostComponent(
                name="Provisioned IOPS",
                unit="IOPS",
                monthly_quantity=Decimal(int(iops) - _GP3_BASELINE_IOPS),
                product_filter=_product_filter(region, "AmazonEC2", "System Operation", [
                    AttributeFilter(key="volumeApiName", value="gp3"),
                    AttributeFilter(key="usagetype", value_regex="/EBS:VolumeP-IOPS.gp3/"),
                ]),
            ))
        throughput = d.get("throughput")
        if throughput is not None and int(throughput) > _GP3_BASELINE_THROUGHPUT:
            components.append(CostComponent(
                name="Provisioned throughput",
                unit="Mbps",
                monthly_quantity=Decimal(int(throughput) - _GP3_BASELINE_THROUGHPUT),
                product_filter=_product_filter(region, "AmazonEC2", "Provisioned Throughput", [
                    AttributeFilter(key="volumeApiName", value="gp3"),
                ]),
            ))
    elif volume_type == "standard":
        requests = usage_quantity(u, "monthly_standard_io_requests")
        components.append(CostComponent(
            name="I/O requests",
            unit="1M request",
            monthly_quantity=requests / 1000000 if requests is not None else None,
            product_filter=_product_filter(region, "AmazonEC2", "System Operation", [
                AttributeFilter(key="volumeApiName", value="standard"),
                AttributeFilter(key="usagetype", value_regex="/EBS:VolumeIOUsage/"),
            ]),
        ))

    return Resource(name=d.address, resource_type=d.resource_type, cost_components=components)


def new_ebs_snapshot(d: ResourceData, u: Optional[ResourceData]) -> Optional[Resource]:
    # The snapshot is as large as the volume it is taken from
    size = None
    for volume in d.get_references("volume_id"):
        if volume.exists("size"):
            size = to_decimal(volume.get("size"))
            break
    if size is None and d.exists("volume_size"):
        size = to_decimal(d.get("volume_size"))

    components = [CostComponent(
        name="EBS snapshot storage",
        unit="GB",
        monthly_quantity=size,
        product_filter=_product_filter(d.region, "AmazonEC2", "Storage Snapshot", [
            AttributeFilter(key="usagetype", value_regex="/EBS:SnapshotUsage$/"),
        ]),
    )]
    return Resource(name=d.address, resource_type=d.resource_type, cost_components=components)


# option settings namespaces
_NS_LAUNCH = "aws:autoscaling:launchconfiguration"
_NS_ASG = "aws:autoscaling:asg"
_NS_ENV = "aws:elasticbeanstalk:environment"
_NS_LOGS = "aws:elasticbeanstalk:cloudwatch:logs"
_NS_RDS = "aws:rds:dbinstance"

_DEFAULT_EB_INSTANCE_TYPE = "t2.micro"


def _eb_settings(d: ResourceData) -> Dict[Tuple[str, str], str]:
    settings: Dict[Tuple[str, str], str] = {}
    for s in d.get("setting") or []:
        if isinstance(s, dict) and s.get("namespace") and s.get("name"):
            settings[(s["namespace"], s["name"])] = s.get("value")
    return settings


def _setting_int(settings: Dict[Tuple[str, str], str], key: Tuple[str, str], default: int) -> int:
    try:
        return int(settings.get(key, default))
    except (TypeError, ValueError):
        return default


def _eb_launch_configuration(
    d: ResourceData, settings: Dict[Tuple[str, str], str], u: Optional[ResourceData]
) -> Resource:
    instance_type = settings.get((_NS_LAUNCH, "InstanceType")) or _DEFAULT_EB_INSTANCE_TYPE
    instances = usage_quantity(u, "instances")
    if instances is None:
        instances = Decimal(_setting_int(settings, (_NS_ASG, "MinSize"), 1))

    components = [CostComponent(
        name=f"Instance usage (Linux/UNIX, on-demand, {instance_type})",
        unit="hours",
        hourly_quantity=instances,
        product_filter=_product_filter(d.region, "AmazonEC2", "Compute Instance", [
            AttributeFilter(key="instanceType", value=instance_type),
            AttributeFilter(key="tenancy", value="Shared"),
            AttributeFilter(key="operatingSystem", value="Linux"),
            AttributeFilter(key="preInstalledSw", value="NA"),
            AttributeFilter(key="capacitystatus", value="Used"),
        ]),
        price_filter=PriceFilter(purchase_option="on_demand"),
    )]

    volume_type = settings.get((_NS_LAUNCH, "RootVolumeType")) or "gp2"
    volume_size = Decimal(_setting_int(settings, (_NS_LAUNCH, "RootVolumeSize"), 8))
    for c in _ebs_storage_components(d.region, volume_type, volume_size * instances):
        c.name = f"Root block device {c.name[0].lower()}{c.name[1:]}"
        components.append(c)

    return Resource(name="ec2", resource_type="aws_launch_configuration", cost_components=components)


def _eb_load_balancer(
    d: ResourceData, settings: Dict[Tuple[str, str], str], usage: Optional[ResourceData]
) -> Resource:
    lb_type = settings.get((_NS_ENV, "LoadBalancerType")) or "application"
    if lb_type == "classic":
        u = sub_usage(usage, "elb")
        return Resource(name="elb", resource_type="aws_elb", cost_components=[
            CostComponent(
                name="Classic load balancer",
                unit="hours",
                hourly_quantity=Decimal(1),
                product_filter=_product_filter(d.region, "AWSELB", "Load Balancer", [
                    AttributeFilter(key="locationType", value="AWS Region"),
                    AttributeFilter(key="usagetype", value_regex="/LoadBalancerUsage/"),
                ]),
            ),
            CostComponent(
                name="Data processed",
                unit="GB",
                monthly_quantity=usage_quantity(u, "monthly_data_processed_gb"),
                product_filter=_product_filter(d.region, "AWSELB", "Load Balancer", [
                    AttributeFilter(key="usagetype", value_regex="/DataProcessing-Bytes/"),
                ]),
            ),
        ])

    family = "Load Balancer-Network" if lb_type == "network" else "Load Balancer-Application"
    label = "Network" if lb_type == "network" else "Application"
    u = sub_usage(usage, "lb")
    return Resource(name="lb", resource_type="aws_lb", cost_components=[
        CostComponent(
            name=f"{label} load balancer",
            unit="hours",
            hourly_quantity=Decimal(1),
            product_filter=_product_filter(d.region, "AWSELB", family, [
                AttributeFilter(key="locationType", value="AWS Region"),
                AttributeFilter(key="usagetype", value_regex="/LoadBalancerUsage/"),
            ]),
        ),
        CostComponent(
            name="Load balancer capacity units",
            unit="LCU",
            hourly_quantity=usage_quantity(u, "capacity_units"),
            product_filter=_product_filter(d.region, "AWSELB", family, [
                AttributeFilter(key="usagetype", value_regex="/LCUUsage/"),
            ]),
        ),
    ])


def _eb_log_group(d: ResourceData, u: Optional[ResourceData]) -> Resource:
    return Resource(name="cloudwatch", resource_type="aws_cloudwatch_log_group", cost_components=[
        CostComponent(
            name="Data ingested",
            unit="GB",
            monthly_quantity=usage_quantity(u, "monthly_data_ingested_gb"),
            product_filter=_product_filter(d.region, "AmazonCloudWatch", "Data Payload", [
                AttributeFilter(key="usagetype", value_regex="/DataProcessing-Bytes/"),
            ]),
        ),
        CostComponent(
            name="Archival Storage",
            unit="GB",
            monthly_quantity=usage_quantity(u, "storage_gb"),
            product_filter=_product_filter(d.region, "AmazonCloudWatch", "Storage Snapshot", [
                AttributeFilter(key="usagetype", value_regex="/TimedStorage-ByteHrs/"),
            ]),
        ),
    ])


def new_elastic_beanstalk_environment(d: ResourceData, u: Optional[ResourceData]) -> Optional[Resource]:
    """
    An environment is priced through the resources Elastic Beanstalk creates
    for it. Each one is a sub-resource whose usage comes from the section of
    the same name in the usage carrier (``ec2``, ``lb``/``elb``, ``db``,
    ``cloudwatch``).
    """
    settings = _eb_settings(d)
    subs = [_eb_launch_configuration(d, settings, sub_usage(u, "ec2"))]

    db_class = settings.get((_NS_RDS, "DBInstanceClass"))
    if db_class:
        db = ResourceData(
            address="db",
            resource_type="aws_db_instance",
            provider_name=d.provider_name,
            region=d.region,
            values={
                "instance_class": db_class,
                "engine": settings.get((_NS_RDS, "DBEngine")) or "mysql",
                "allocated_storage": _setting_int(settings, (_NS_RDS, "DBAllocatedStorage"), 5),
                "multi_az": str(settings.get((_NS_RDS, "MultiAZDatabase"), "")).lower() == "true",
            },
        )
        subs.append(new_db_instance(db, sub_usage(u, "db")))

    if str(settings.get((_NS_LOGS, "StreamLogs"), "")).lower() == "true":
        subs.append(_eb_log_group(d, sub_usage(u, "cloudwatch")))

    subs.append(_eb_load_balancer(d, settings, u))
    return Resource(name=d.address, resource_type=d.resource_type, sub_resources=subs)


REGISTRY_ITEMS = [
    RegistryItem("aws_db_instance", new_db_instance),
    RegistryItem("aws_ebs_volume", new_ebs_volume),
    RegistryItem(
        "aws_ebs_snapshot",
        new_ebs_snapshot,
        notes=["Size is taken from the referenced aws_ebs_volume."],
    ),
    RegistryItem(
        "aws_elastic_beanstalk_environment",
        new_elastic_beanstalk_environment,
        notes=["Priced as its launch configuration, load balancer, log group and database."],
    ),
]
