"""Customer application service."""

import structlog

from oms.application.commands import CreateCustomerCommand
from oms.application.results import CustomerResult
from oms.application.runner import UnitOfWorkRunner
from oms.application.unit_of_work import AbstractUnitOfWork
from oms.application.validation import check_length
from oms.domain.entities import Customer
from oms.domain.exceptions import DomainError, DuplicateEmailError

logger = structlog.get_logger()


class CustomerService:
    """Application service for customer registration."""

    def __init__(self, runner: UnitOfWorkRunner) -> None:
        self.runner = runner

    async def create_customer(self, command: CreateCustomerCommand) -> CustomerResult:
        """Register a customer. Emails are unique, compared lower-cased.

        Returns:
            CustomerResult with the created customer.
        """
        try:
            check_length(command.first_name, "first_name", 100)
            check_length(command.last_name, "last_name", 100)
            check_length(command.email, "email", 255)
            check_length(command.address, "address", 500)
        except DomainError as e:
            return CustomerResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Customer:
            customer = Customer.create(
                first_name=command.first_name,
                last_name=command.last_name,
                email=command.email,
                phone=command.phone,
                address=command.address,
                created_by=command.actor,
            )
            if await uow.customers.get_by_email(customer.email) is not None:
                raise DuplicateEmailError(customer.email)
            await uow.customers.add(customer)
            return customer

        try:
            customer = await self.runner.run(operation, "create_customer")
        except DomainError as e:
            logger.info("Customer registration rejected", error_code=e.error_code, error=e.message)
            return CustomerResult.failure(e)

        logger.info("Customer created", customer_id=str(customer.id))
        return CustomerResult(customer=customer)
