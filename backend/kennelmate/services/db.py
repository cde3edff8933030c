"""
KennelMate Backend - DynamoDB Database Service

Purpose: Unified database interface for DynamoDB (AWS or Local).
Handles custom reminders, reminder statuses, migration flags, and the
read-only breeding tables (dogs, litters, planned breedings, pregnancies).

Every table is partitioned by user_id, so all reads are Queries scoped to
one user.

Testing:
    # DynamoDB Local
    db = DatabaseService()
    await db.put_custom_reminder("user_123", reminder)
    reminders = await db.query_custom_reminders("user_123")

AWS Deployment Notes:
    - Tables created by scripts/create_tables_local.py (or deploy tooling)
    - Uses on-demand billing (PAY_PER_REQUEST)
    - IAM role needs dynamodb:PutItem, GetItem, Query, UpdateItem, DeleteItem
    - Enable point-in-time recovery for production
"""

import logging
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
import boto3
from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError

from kennelmate.config import settings
from kennelmate.models.reminder import CustomReminder, ReminderStatus
from kennelmate.models.domain import Dog, Litter, PlannedBreeding, Pregnancy

logger = logging.getLogger(__name__)


def is_conditional_check_failure(error: ClientError) -> bool:
    """True when a conditional write lost to an existing item"""
    return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'


def parse_items(items, parse, id_attr: str, kind: str) -> list:
    """Parse table rows one at a time, skipping rows that do not parse"""
    records = []
    for item in items:
        try:
            records.append(parse(item))
        except (KeyError, TypeError, ValueError):
            logger.exception(f"Skipping malformed {kind} {item.get(id_attr, '<no id>')}")
    return records


class DatabaseService:
    """
    Database service for DynamoDB operations
    """

    def __init__(self):
        # Initialize DynamoDB resource
        if settings.USE_DYNAMODB_LOCAL:
            self.dynamodb = boto3.resource(
                'dynamodb',
                endpoint_url=settings.DYNAMODB_LOCAL_ENDPOINT,
                region_name=settings.AWS_REGION,
                aws_access_key_id='local',
                aws_secret_access_key='local'
            )
            logger.info(f"Database: Using DynamoDB Local at {settings.DYNAMODB_LOCAL_ENDPOINT}")
        else:
            self.dynamodb = boto3.resource(
                'dynamodb',
                region_name=settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            )
            logger.info("Database: Using DynamoDB AWS")

        # Get table references
        self.custom_reminders_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_CUSTOM_REMINDERS)
        self.reminder_status_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_REMINDER_STATUS)
        self.migrations_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_MIGRATIONS)

        self.dogs_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_DOGS)
        self.litters_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_LITTERS)
        self.planned_breedings_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_PLANNED_BREEDINGS)
        self.pregnancies_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_PREGNANCIES)

    # =========================================================================
    # TABLE VERIFICATION
    # =========================================================================

    async def verify_tables(self):
        """Verify that all required tables exist"""
        tables = [
            self.custom_reminders_table,
            self.reminder_status_table,
            self.migrations_table,
            self.dogs_table,
            self.litters_table,
            self.planned_breedings_table,
            self.pregnancies_table,
        ]

        for table in tables:
            try:
                table.load()
                logger.info(f"Table verified: {table.name}")
            except ClientError as e:
                if e.response['Error']['Code'] == 'ResourceNotFoundException':
                    logger.error(f"Table not found: {table.name}")
                raise

    def _query_user(self, table, user_id: str) -> List[Dict[str, Any]]:
        """Query every item in a user's partition, following pagination"""
        items: List[Dict[str, Any]] = []
        kwargs = {'KeyConditionExpression': Key('user_id').eq(user_id)}

        while True:
            response = table.query(**kwargs)
            items.extend(response.get('Items', []))

            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            kwargs['ExclusiveStartKey'] = last_key

    def _put(self, table, item: Dict[str, Any], overwrite: bool, key_attr: str) -> bool:
        """
        Put an item, optionally refusing to replace an existing one

        Returns:
            False when overwrite is off and the item already existed
        """
        kwargs: Dict[str, Any] = {'Item': item}
        if not overwrite:
            kwargs['ConditionExpression'] = Attr(key_attr).not_exists()

        try:
            table.put_item(**kwargs)
            return True
        except ClientError as e:
            if not overwrite and is_conditional_check_failure(e):
                return False
            raise

    # =========================================================================
    # CUSTOM REMINDERS
    # =========================================================================

    async def put_custom_reminder(
        self,
        user_id: str,
        reminder: CustomReminder,
        overwrite: bool = True
    ) -> bool:
        """Save custom reminder; False if it existed and overwrite is off"""
        try:
            written = self._put(
                self.custom_reminders_table,
                reminder.to_dynamodb_item(user_id),
                overwrite,
                'reminder_id',
            )
            if written:
                logger.info(f"Saved custom reminder: {reminder.id}")
            else:
                logger.info(f"Custom reminder already exists: {reminder.id}")
            return written

        except ClientError as e:
            logger.error(f"Failed to save custom reminder: {e}")
            raise

    async def query_custom_reminders(self, user_id: str) -> List[CustomReminder]:
        """List all custom reminders for a user"""
        try:
            items = self._query_user(self.custom_reminders_table, user_id)
            return [CustomReminder.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to query custom reminders: {e}")
            raise

    async def get_custom_reminder(self, user_id: str, reminder_id: str) -> Optional[CustomReminder]:
        """Get custom reminder by ID"""
        try:
            response = self.custom_reminders_table.get_item(
                Key={'user_id': user_id, 'reminder_id': reminder_id}
            )

            if 'Item' in response:
                return CustomReminder.from_dynamodb_item(response['Item'])

            return None

        except ClientError as e:
            logger.error(f"Failed to get custom reminder: {e}")
            raise

    async def delete_custom_reminder(self, user_id: str, reminder_id: str) -> bool:
        """Delete custom reminder"""
        try:
            self.custom_reminders_table.delete_item(
                Key={'user_id': user_id, 'reminder_id': reminder_id}
            )
            logger.info(f"Deleted custom reminder: {reminder_id}")
            return True

        except ClientError as e:
            logger.error(f"Failed to delete custom reminder: {e}")
            raise

    # =========================================================================
    # REMINDER STATUS
    # =========================================================================

    async def put_status(
        self,
        user_id: str,
        status: ReminderStatus,
        overwrite: bool = True
    ) -> bool:
        """Save reminder status; False if it existed and overwrite is off"""
        try:
            return self._put(
                self.reminder_status_table,
                status.to_dynamodb_item(user_id),
                overwrite,
                'reminder_id',
            )

        except ClientError as e:
            logger.error(f"Failed to save reminder status: {e}")
            raise

    async def query_statuses(self, user_id: str) -> List[ReminderStatus]:
        """List all reminder statuses for a user"""
        try:
            items = self._query_user(self.reminder_status_table, user_id)
            return [ReminderStatus.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to query reminder statuses: {e}")
            raise

    async def delete_status(self, user_id: str, reminder_id: str) -> bool:
        """Delete reminder status"""
        try:
            self.reminder_status_table.delete_item(
                Key={'user_id': user_id, 'reminder_id': reminder_id}
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to delete reminder status: {e}")
            raise

    # =========================================================================
    # MIGRATION FLAGS
    # =========================================================================

    async def get_migration_record(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get the migration record for a user"""
        try:
            response = self.migrations_table.get_item(Key={'user_id': user_id})
            return response.get('Item')

        except ClientError as e:
            logger.error(f"Failed to get migration record: {e}")
            raise

    async def set_migrated(self, user_id: str) -> bool:
        """
        Compare-and-set the migrated flag

        Returns:
            True if this call flipped the flag, False if it was already set
        """
        try:
            self.migrations_table.update_item(
                Key={'user_id': user_id},
                UpdateExpression='SET migrated = :true, migrated_at = :now',
                ConditionExpression=Attr('migrated').not_exists() | Attr('migrated').eq(False),
                ExpressionAttributeValues={
                    ':true': True,
                    ':now': datetime.now(timezone.utc).isoformat(),
                },
            )
            logger.info(f"Migration flag set for user: {user_id}")
            return True

        except ClientError as e:
            if is_conditional_check_failure(e):
                return False
            logger.error(f"Failed to set migration flag: {e}")
            raise

    async def increment_failed_attempts(self, user_id: str) -> int:
        """Atomically bump the failed attempt counter and return the new value"""
        try:
            response = self.migrations_table.update_item(
                Key={'user_id': user_id},
                UpdateExpression='ADD failed_attempts :one SET last_failed_at = :now',
                ExpressionAttributeValues={
                    ':one': 1,
                    ':now': datetime.now(timezone.utc).isoformat(),
                },
                ReturnValues='UPDATED_NEW',
            )
            return int(response['Attributes']['failed_attempts'])

        except ClientError as e:
            logger.error(f"Failed to record migration attempt: {e}")
            raise

    # =========================================================================
    # BREEDING DATA (read-only)
    # =========================================================================

    async def query_dogs(self, user_id: str) -> List[Dog]:
        """List dogs for a user"""
        try:
            return parse_items(
                self._query_user(self.dogs_table, user_id), Dog.from_dynamodb_item, 'dog_id', 'dog'
            )

        except ClientError as e:
            logger.error(f"Failed to query dogs: {e}")
            raise

    async def query_litters(self, user_id: str) -> List[Litter]:
        """List litters for a user"""
        try:
            return parse_items(
                self._query_user(self.litters_table, user_id), Litter.from_dynamodb_item, 'litter_id', 'litter'
            )

        except ClientError as e:
            logger.error(f"Failed to query litters: {e}")
            raise

    async def query_planned_breedings(self, user_id: str) -> List[PlannedBreeding]:
        """List planned breedings for a user"""
        try:
            return parse_items(
                self._query_user(self.planned_breedings_table, user_id),
                PlannedBreeding.from_dynamodb_item,
                'breeding_id',
                'planned breeding',
            )

        except ClientError as e:
            logger.error(f"Failed to query planned breedings: {e}")
            raise

    async def query_pregnancies(self, user_id: str) -> List[Pregnancy]:
        """List pregnancies for a user"""
        try:
            return parse_items(
                self._query_user(self.pregnancies_table, user_id),
                Pregnancy.from_dynamodb_item,
                'pregnancy_id',
                'pregnancy',
            )

        except ClientError as e:
            logger.error(f"Failed to query pregnancies: {e}")
            raise
