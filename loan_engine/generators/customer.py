"""Customer generator."""

from __future__ import annotations

import random
from typing import Iterator

from loan_engine.generators.base import BaseGenerator
from loan_engine.models.base import Address, Guarantor
from loan_engine.models.customer import Customer


class CustomerGenerator(BaseGenerator):
    """Generate synthetic borrowers, most of them with a guarantor."""

    GUARANTOR_PROBABILITY = 0.7

    def generate(self) -> Customer:
        """Generate a single customer.

        Returns
        -------
        Customer
            Generated customer.
        """
        return self._generate_one()

    def generate_batch(self, count: int) -> Iterator[Customer]:
        """Generate multiple customers.

        Parameters
        ----------
        count : int
            Number of customers to generate.

        Yields
        ------
        Customer
            Generated customers.
        """
        for _ in range(count):
            yield self._generate_one()

    def _generate_one(self) -> Customer:
        customer_id = f"C-{self.fake.unique.numerify('########')}"
        guarantor = None
        if random.random() < self.GUARANTOR_PROBABILITY:
            guarantor = Guarantor(
                name=self.fake.name(),
                phone=self.fake.phone_number(),
                address=self._generate_address(),
            )

        return Customer(
            customer_id=customer_id,
            name=self.fake.name(),
            phone=self.fake.phone_number(),
            email=self.fake.email(),
            address=self._generate_address(),
            photo_ref=f"photos/{customer_id}.png",
            guarantor=guarantor,
        )

    def _generate_address(self) -> Address:
        return Address(
            street=self.fake.street_address(),
            city=self.fake.city(),
            state=self.fake.state(),
            postal_code=self.fake.postcode(),
            country="IN",
        )
