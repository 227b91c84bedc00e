"""
Resource builder and registry tests.
"""
from decimal import Decimal

from plancost.models.resource import Resource, ResourceData
from plancost.resources import aws, azure
from plancost.resources.registry import RegistryItem, ResourceRegistry, default_registry


def _data(rtype, values, address=None, region="us-east-1"):
    return ResourceData(
        address=address or f"{rtype}.test",
        resource_type=rtype,
        provider_name="registry.terraform.io/hashicorp/test",
        region=region,
        values=values,
    )


def _usage(**values):
    return ResourceData("infracost_x.usage", "infracost_x", "infracost", values=values)


def _components(resource):
    return {c.name: c for c in resource.cost_components}


# --------------------------------------------------------- Registry
class TestRegistry:
    def test_default_registry_types(self):
        reg = default_registry()
        for name in ("aws_db_instance", "aws_ebs_volume", "aws_ebs_snapshot",
                     "aws_elastic_beanstalk_environment", "azurerm_storage_account"):
            assert name in reg
        assert [i.name for i in reg.items()] == sorted(i.name for i in reg.items())

    def test_registries_are_independent(self):
        a = default_registry()
        b = default_registry()
        a.register(RegistryItem("custom_thing", lambda d, u: Resource(name=d.address)))
        assert "custom_thing" in a
        assert "custom_thing" not in b

    def test_unknown_type_returns_none(self):
        assert default_registry().create(_data("aws_instance", {})) is None

    def test_builder_receives_usage(self):
        seen = []

        def build(d, u):
            seen.append(u)
            return Resource(name=d.address)

        reg = ResourceRegistry([RegistryItem("x_type", build)])
        usage = _usage(foo=1)
        res = reg.create(_data("x_type", {}), usage)
        assert res.name == "x_type.test"
        assert seen == [usage]


# --------------------------------------------------------- AWS
class TestDBInstance:
    def test_basic_components(self):
        d = _data("aws_db_instance", {
            "instance_class": "db.t3.large", "engine": "postgres", "allocated_storage": 100,
        }, region="eu-west-1")
        comps = _components(aws.new_db_instance(d, None))
        instance = comps["Database instance (on-demand, Single-AZ, db.t3.large)"]
        assert instance.hourly_quantity == Decimal(1)
        assert instance.monthly() == Decimal(730)
        assert instance.product_filter.region == "eu-west-1"
        attrs = {a.key: a.value for a in instance.product_filter.attribute_filters}
        assert attrs["databaseEngine"] == "PostgreSQL"
        assert comps["Storage (general purpose SSD, gp2)"].monthly_quantity == Decimal(100)
        assert comps["Additional backup storage"].monthly_quantity is None

    def test_multi_az_and_iops(self):
        d = _data("aws_db_instance", {
            "instance_class": "db.m5.xlarge", "engine": "mysql", "multi_az": True,
            "storage_type": "io1", "iops": 3000, "allocated_storage": 200,
        })
        comps = _components(aws.new_db_instance(d, None))
        assert "Database instance (on-demand, Multi-AZ, db.m5.xlarge)" in comps
        assert comps["Provisioned IOPS"].monthly_quantity == Decimal(3000)

    def test_edition_and_license(self):
        d = _data("aws_db_instance", {"instance_class": "db.m5.large", "engine": "sqlserver-se"})
        res = aws.new_db_instance(d, None)
        attrs = {a.key: a.value for a in res.cost_components[0].product_filter.attribute_filters}
        assert attrs["databaseEdition"] == "Standard"
        assert attrs["licenseModel"] == "License included"

    def test_backup_usage(self):
        d = _data("aws_db_instance", {"instance_class": "db.t3.micro", "engine": "mysql"})
        comps = _components(aws.new_db_instance(d, _usage(additional_backup_storage_gb=500)))
        assert comps["Additional backup storage"].monthly_quantity == Decimal(500)

    def test_performance_insights(self):
        d = _data("aws_db_instance", {
            "instance_class": "db.r5.2xlarge", "engine": "postgres",
            "performance_insights_enabled": True, "performance_insights_retention_period": 731,
        })
        comps = _components(aws.new_db_instance(
            d, _usage(monthly_additional_performance_insights_requests=5000)
        ))
        assert comps["Performance Insights long term retention (db.r5.2xlarge)"].monthly_quantity == Decimal(8)
        assert comps["Performance Insights API"].monthly_quantity == Decimal(5)

    def test_short_retention_has_no_long_term_component(self):
        d = _data("aws_db_instance", {
            "instance_class": "db.t3.micro", "engine": "postgres",
            "performance_insights_enabled": True, "performance_insights_retention_period": 7,
        })
        names = _components(aws.new_db_instance(d, None))
        assert not any(n.startswith("Performance Insights long term") for n in names)
        assert names["Performance Insights API"].monthly_quantity is None

    def test_zero_iops_is_not_provisioned(self):
        d = _data("aws_db_instance", {
            "instance_class": "db.t3.micro", "engine": "mysql", "allocated_storage": 20, "iops": 0,
        })
        comps = _components(aws.new_db_instance(d, None))
        assert "Provisioned IOPS" not in comps
        assert comps["Storage (general purpose SSD, gp2)"].monthly_quantity == Decimal(20)

    def test_backup_component_may_miss_price(self):
        d = _data("aws_db_instance", {"instance_class": "db.t3.micro", "engine": "mysql"})
        out = aws.new_db_instance(d, None).to_dict()
        flags = {c["name"]: c["ignore_if_missing_price"] for c in out["cost_components"]}
        assert flags["Additional backup storage"] is True
        assert flags["Database instance (on-demand, Single-AZ, db.t3.micro)"] is False


class TestEBS:
    def test_default_size(self):
        comps = _components(aws.new_ebs_volume(_data("aws_ebs_volume", {}), None))
        assert comps["Storage (general purpose SSD, gp2)"].monthly_quantity == Decimal(8)

    def test_io1_iops(self):
        comps = _components(aws.new_ebs_volume(_data("aws_ebs_volume", {"type": "io1", "size": 10, "iops": 500}), None))
        assert comps["Provisioned IOPS"].monthly_quantity == Decimal(500)

    def test_gp3_above_baseline(self):
        d = _data("aws_ebs_volume", {"type": "gp3", "size": 10, "iops": 4000, "throughput": 250})
        comps = _components(aws.new_ebs_volume(d, None))
        assert comps["Provisioned IOPS"].monthly_quantity == Decimal(1000)
        assert comps["Provisioned throughput"].monthly_quantity == Decimal(125)

    def test_standard_io_requests(self):
        d = _data("aws_ebs_volume", {"type": "standard", "size": 10})
        comps = _components(aws.new_ebs_volume(d, _usage(monthly_standard_io_requests=3000000)))
        assert comps["I/O requests"].monthly_quantity == Decimal(3)

    def test_unknown_type_skipped(self):
        assert aws.new_ebs_volume(_data("aws_ebs_volume", {"type": "floppy"}), None) is None

    def test_snapshot_size_from_referenced_volume(self):
        volume = _data("aws_ebs_volume", {"size": 42}, address="aws_ebs_volume.v")
        snap = _data("aws_ebs_snapshot", {})
        snap.add_reference("volume_id", volume)
        res = aws.new_ebs_snapshot(snap, None)
        assert res.cost_components[0].monthly_quantity == Decimal(42)

    def test_snapshot_without_volume(self):
        res = aws.new_ebs_snapshot(_data("aws_ebs_snapshot", {}), None)
        assert res.cost_components[0].monthly_quantity is None


# --------------------------------------------------------- Azure
class TestStorageAccount:
    def _account(self, **values):
        base = {
            "location": "westeurope",
            "account_kind": "BlockBlobStorage",
            "account_tier": "Standard",
            "account_replication_type": "LRS",
        }
        base.update(values)
        return _data("azurerm_storage_account", base)

    def test_hot_capacity_tiers(self):
        res = azure.new_storage_account(self._account(), _usage(storage_gb=600000))
        comps = _components(res)
        assert comps["Capacity (first 50TB)"].monthly_quantity == Decimal(51200)
        assert comps["Capacity (next 450TB)"].monthly_quantity == Decimal(460800)
        assert comps["Capacity (over 500TB)"].monthly_quantity == Decimal(88000)
        assert comps["Capacity (next 450TB)"].price_filter.start_usage_amount == "51200"

    def test_zero_tiers_are_omitted_except_first(self):
        res = azure.new_storage_account(self._account(), _usage(storage_gb=51200))
        names = [c.name for c in res.cost_components]
        assert "Capacity (first 50TB)" in names
        assert "Capacity (next 450TB)" not in names
        assert "Capacity (over 500TB)" not in names

    def test_first_tier_kept_when_zero(self):
        res = azure.new_storage_account(self._account(), _usage(storage_gb=0))
        comps = _components(res)
        assert comps["Capacity (first 50TB)"].monthly_quantity == Decimal(0)

    def test_no_usage(self):
        comps = _components(azure.new_storage_account(self._account(), None))
        assert comps["Capacity"].monthly_quantity is None
        assert comps["Write operations"].monthly_quantity is None

    def test_non_finite_usage_is_ignored(self):
        comps = _components(azure.new_storage_account(self._account(), _usage(storage_gb="NaN")))
        assert comps["Capacity"].monthly_quantity is None

    def test_cool_tier_is_not_tiered(self):
        comps = _components(azure.new_storage_account(self._account(access_tier="Cool"), _usage(storage_gb=600000)))
        assert comps["Capacity"].monthly_quantity == Decimal(600000)
        sku = {a.key: a.value for a in comps["Capacity"].product_filter.attribute_filters}["skuName"]
        assert sku == "Cool LRS"

    def test_operations_are_per_10k(self):
        comps = _components(azure.new_storage_account(self._account(), _usage(monthly_write_operations=250000)))
        assert comps["Write operations"].monthly_quantity == Decimal(25)

    def test_premium_has_no_retrieval(self):
        comps = _components(azure.new_storage_account(self._account(account_tier="Premium"), None))
        assert "Data retrieval" not in comps
        sku = {a.key: a.value for a in comps["Capacity"].product_filter.attribute_filters}["skuName"]
        assert sku == "Premium LRS"

    def test_ragrs_list_operations_use_grs_sku(self):
        res = azure.new_storage_account(
            self._account(account_replication_type="RAGRS"),
            _usage(monthly_list_and_create_container_operations=10000),
        )
        comp = _components(res)["List and create container operations"]
        sku = {a.key: a.value for a in comp.product_filter.attribute_filters}["skuName"]
        assert sku == "Hot GRS"

    def test_other_account_kinds_skipped(self):
        assert azure.new_storage_account(self._account(account_kind="StorageV2"), None) is None

    def test_unknown_tier_skipped(self):
        assert azure.new_storage_account(self._account(account_tier="Gold"), None) is None


# --------------------------------------------------------- Elastic Beanstalk
def _setting(namespace, name, value):
    return {"namespace": namespace, "name": name, "value": value}


class TestBeanstalkEnvironment:
    def _env(self, *settings):
        return _data("aws_elastic_beanstalk_environment", {
            "name": "web", "setting": list(settings),
        }, address="aws_elastic_beanstalk_environment.web")

    def _subs(self, resource):
        return {s.name: s for s in resource.sub_resources}

    def test_registered(self):
        res = default_registry().create(self._env())
        assert res.resource_type == "aws_elastic_beanstalk_environment"
        assert res.cost_components == []

    def test_defaults(self):
        res = aws.new_elastic_beanstalk_environment(self._env(), None)
        subs = self._subs(res)
        assert sorted(subs) == ["ec2", "lb"]
        ec2 = _components(subs["ec2"])
        assert ec2["Instance usage (Linux/UNIX, on-demand, t2.micro)"].hourly_quantity == Decimal(1)
        assert ec2["Root block device storage (general purpose SSD, gp2)"].monthly_quantity == Decimal(8)
        lb = _components(subs["lb"])
        assert lb["Application load balancer"].hourly_quantity == Decimal(1)
        assert lb["Load balancer capacity units"].hourly_quantity is None

    def test_launch_configuration_settings(self):
        res = aws.new_elastic_beanstalk_environment(self._env(
            _setting("aws:autoscaling:launchconfiguration", "InstanceType", "m5.large"),
            _setting("aws:autoscaling:launchconfiguration", "RootVolumeSize", "20"),
            _setting("aws:autoscaling:launchconfiguration", "RootVolumeType", "gp3"),
            _setting("aws:autoscaling:asg", "MinSize", "3"),
        ), None)
        ec2 = _components(self._subs(res)["ec2"])
        assert ec2["Instance usage (Linux/UNIX, on-demand, m5.large)"].hourly_quantity == Decimal(3)
        assert ec2["Root block device storage (general purpose SSD, gp3)"].monthly_quantity == Decimal(60)

    def test_nested_usage_sections(self):
        usage = _usage(
            ec2={"instances": 4},
            elb={"monthly_data_processed_gb": 100},
            cloudwatch={"monthly_data_ingested_gb": 10, "storage_gb": 50},
            db={"additional_backup_storage_gb": 200},
        )
        res = aws.new_elastic_beanstalk_environment(self._env(
            _setting("aws:elasticbeanstalk:environment", "LoadBalancerType", "classic"),
            _setting("aws:elasticbeanstalk:cloudwatch:logs", "StreamLogs", "true"),
            _setting("aws:rds:dbinstance", "DBInstanceClass", "db.t3.small"),
            _setting("aws:rds:dbinstance", "DBEngine", "postgres"),
            _setting("aws:rds:dbinstance", "DBAllocatedStorage", "30"),
        ), usage)
        subs = self._subs(res)
        assert sorted(subs) == ["cloudwatch", "db", "ec2", "elb"]

        assert _components(subs["ec2"])["Instance usage (Linux/UNIX, on-demand, t2.micro)"].hourly_quantity == Decimal(4)
        elb = _components(subs["elb"])
        assert elb["Data processed"].monthly_quantity == Decimal(100)
        logs = _components(subs["cloudwatch"])
        assert logs["Data ingested"].monthly_quantity == Decimal(10)
        assert logs["Archival Storage"].monthly_quantity == Decimal(50)
        db = _components(subs["db"])
        assert db["Database instance (on-demand, Single-AZ, db.t3.small)"].hourly_quantity == Decimal(1)
        assert db["Storage (general purpose SSD, gp2)"].monthly_quantity == Decimal(30)
        assert db["Additional backup storage"].monthly_quantity == Decimal(200)

    def test_all_cost_components_flattens_sub_resources(self):
        res = aws.new_elastic_beanstalk_environment(self._env(
            _setting("aws:rds:dbinstance", "DBInstanceClass", "db.t3.small"),
        ), None)
        names = [c.name for c in res.all_cost_components()]
        assert "Application load balancer" in names
        assert "Database instance (on-demand, Single-AZ, db.t3.small)" in names
        assert len(names) == sum(len(s.cost_components) for s in res.sub_resources)
        out = res.to_dict()
        assert [s["name"] for s in out["sub_resources"]] == ["ec2", "db", "lb"]

    def test_logs_not_streamed_by_default(self):
        res = aws.new_elastic_beanstalk_environment(self._env(), _usage(cloudwatch={"storage_gb": 5}))
        assert "cloudwatch" not in self._subs(res)

    def test_network_load_balancer(self):
        res = aws.new_elastic_beanstalk_environment(self._env(
            _setting("aws:elasticbeanstalk:environment", "LoadBalancerType", "network"),
        ), _usage(lb={"capacity_units": 2}))
        lb = _components(self._subs(res)["lb"])
        assert lb["Network load balancer"].product_filter.product_family == "Load Balancer-Network"
        assert lb["Load balancer capacity units"].hourly_quantity == Decimal(2)
