"""
Managed Search Cluster - Pulumi program
Encryption, authorization, cluster, credentials and secret mirrors from one stack config
"""
import pulumi
from icd_search.backend import PulumiBackend, ibm_provider
from icd_search.composer import compose_search_cluster
from icd_search.config import get_config
from icd_search.policies.functions import KMS_PROVIDER

# Configuration
inputs = get_config()

# Cross-account key access uses its own provider
providers = {}
if inputs.ibmcloud_kms_api_key and not inputs.skip_iam_authorization_policy:
    providers[KMS_PROVIDER] = ibm_provider("kms-account", inputs.ibmcloud_kms_api_key, inputs.region)

# Declare the deployment
cluster = compose_search_cluster(inputs, PulumiBackend(providers=providers))

# Exports
pulumi.export("id", cluster["id"])
pulumi.export("guid", cluster["guid"])
pulumi.export("crn", cluster["crn"])
pulumi.export("version", cluster["version"])
pulumi.export("adminuser", cluster["adminuser"])
pulumi.export("resource_group_id", cluster["resource_group_id"])
pulumi.export("hostname", cluster["hostname"])
pulumi.export("port", cluster["port"])
pulumi.export("certificate_base64", cluster["certificate_base64"])
pulumi.export("service_credentials_json", pulumi.Output.secret(cluster["service_credentials_json"]))
pulumi.export("service_credentials_object", pulumi.Output.secret(cluster["service_credentials_object"]))
pulumi.export("cbr_rule_ids", cluster["cbr_rule_ids"])
pulumi.export("secrets_manager_secrets", cluster["secrets_manager_secrets"])
pulumi.export("kms_key_crn", cluster["kms_key_crn"])
pulumi.export("backup_encryption_key_crn", cluster["backup_encryption_key_crn"])
pulumi.export("member_group", cluster["topology"].kind)
