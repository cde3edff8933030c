"""
Create DynamoDB tables for local development

Every table is partitioned by user_id. Reminder tables add reminder_id as the
sort key; the breeding tables add their entity id.

Usage:
    python -m kennelmate.scripts.create_tables_local
"""

import boto3
from botocore.exceptions import ClientError
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from kennelmate.config import settings


def _user_table(name: str, sort_key: str = None) -> dict:
    key_schema = [{'AttributeName': 'user_id', 'KeyType': 'HASH'}]
    attribute_definitions = [{'AttributeName': 'user_id', 'AttributeType': 'S'}]

    if sort_key:
        key_schema.append({'AttributeName': sort_key, 'KeyType': 'RANGE'})
        attribute_definitions.append({'AttributeName': sort_key, 'AttributeType': 'S'})

    return {
        'name': name,
        'key_schema': key_schema,
        'attribute_definitions': attribute_definitions,
    }


def create_tables():
    """Create all required DynamoDB tables"""

    print("Creating DynamoDB tables...")
    print(f"Endpoint: {settings.dynamodb_endpoint}")
    print(f"Region: {settings.AWS_REGION}")

    dynamodb = boto3.client(
        'dynamodb',
        endpoint_url=settings.dynamodb_endpoint,
        region_name=settings.AWS_REGION,
        aws_access_key_id='local',
        aws_secret_access_key='local'
    )

    tables = [
        _user_table(settings.get_table_name("custom_reminders"), 'reminder_id'),
        _user_table(settings.get_table_name("reminder_status"), 'reminder_id'),
        _user_table(settings.get_table_name("migrations")),
        _user_table(settings.get_table_name("dogs"), 'dog_id'),
        _user_table(settings.get_table_name("litters"), 'litter_id'),
        _user_table(settings.get_table_name("planned_breedings"), 'breeding_id'),
        _user_table(settings.get_table_name("pregnancies"), 'pregnancy_id'),
    ]

    for table_config in tables:
        try:
            print(f"\nCreating table: {table_config['name']}")

            kwargs = {
                "TableName": table_config["name"],
                "KeySchema": table_config["key_schema"],
                "AttributeDefinitions": table_config["attribute_definitions"],
                "BillingMode": settings.DYNAMODB_BILLING_MODE,
            }
            if settings.DYNAMODB_BILLING_MODE == "PROVISIONED":
                kwargs["ProvisionedThroughput"] = {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5}

            dynamodb.create_table(**kwargs)

            print(f"✓ Table created: {table_config['name']}")

        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceInUseException':
                print(f"⚠ Table already exists: {table_config['name']}")
            else:
                print(f"✗ Error creating table {table_config['name']}: {e}")
                raise

    print("\n✓ All tables created successfully!")


if __name__ == "__main__":
    create_tables()
