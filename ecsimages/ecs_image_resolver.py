import asyncio
import logging

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import ECSImagesError
from .models import Image

# DescribeServices rejects requests for more than 10 services
DESCRIBE_SERVICES_MAX = 10


async def gather_all(coros):
    """
    Run all coroutines concurrently and wait for every one of them to finish.
    Siblings of a failed coroutine are not cancelled; once all are done the
    first exception (in submission order) is raised, otherwise the results
    are returned in submission order.
    """
    results = await asyncio.gather(*coros, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def filter_clusters(clusters, cluster_includes):
    """Keep clusters containing any of the include substrings, or all if none given."""
    if not cluster_includes:
        return list(clusters)
    return [
        cluster
        for cluster in clusters
        if any(include in cluster for include in cluster_includes)
    ]


def _chunks(items, size):
    for start in range(0, len(items), size):
        yield items[start : start + size]


class ECSImageResolver:
    def __init__(self, ecs_client, logger=None):
        self.ecs = ecs_client
        self.logger = logger or logging.getLogger(__name__)

    async def image_of_task_definition(self, task_definition, service_name):
        """
        Describe a task definition and return the image of its last container
        definition. Task definitions are expected to carry their main container
        last; other containers are not looked at.
        """
        response = await self.ecs.describe_task_definition(
            taskDefinition=task_definition
        )
        task_def = response.get("taskDefinition")
        if not task_def:
            return None
        task_def_arn = task_def.get("taskDefinitionArn")
        if not task_def_arn:
            return None
        container_defs = task_def.get("containerDefinitions")
        if not container_defs:
            return None
        image = container_defs[-1].get("image")
        if not image:
            return None
        return Image(
            image_name=image,
            task_definition_name=task_def_arn,
            service_name=service_name,
        )

    async def _describe_services(self, service_arns, cluster):
        response = await self.ecs.describe_services(
            cluster=cluster, services=service_arns
        )
        for failure in response.get("failures", []):
            self.logger.debug(
                f"[{cluster}] Could not describe {failure.get('arn')}: "
                f"{failure.get('reason')}"
            )
        return response.get("services", [])

    async def images_of_services(self, service_arns, cluster):
        """Resolve the images of a batch of services belonging to one cluster."""
        described = await gather_all(
            self._describe_services(chunk, cluster)
            for chunk in _chunks(list(service_arns), DESCRIBE_SERVICES_MAX)
        )

        task_definitions = []
        for services in described:
            for service in services:
                task_def = service.get("taskDefinition")
                service_name = service.get("serviceName")
                if task_def and service_name:
                    task_definitions.append((task_def, service_name))

        images = await gather_all(
            self.image_of_task_definition(task_def, service_name)
            for task_def, service_name in task_definitions
        )
        return [image for image in images if image is not None]

    async def images_of_cluster(self, cluster):
        """Page through all services of a cluster and collect their images."""
        all_images = []
        next_token = None
        try:
            while True:
                kwargs = {"cluster": cluster}
                if next_token is not None:
                    kwargs["nextToken"] = next_token
                response = await self.ecs.list_services(**kwargs)

                service_arns = response.get("serviceArns", [])
                self.logger.debug(f"[{cluster}] Got {len(service_arns)} services")
                if service_arns:
                    all_images.extend(
                        await self.images_of_services(service_arns, cluster)
                    )

                next_token = response.get("nextToken")
                if next_token is None:
                    break
        except ECSImagesError:
            raise
        except (BotoCoreError, ClientError) as e:
            raise ECSImagesError(
                f"Failed to get images of cluster '{cluster}': {e}"
            ) from e

        self.logger.info(f"[{cluster}] Found {len(all_images)} images")
        return cluster, all_images

    async def list_clusters(self):
        clusters = []
        next_token = None
        try:
            while True:
                if next_token is None:
                    response = await self.ecs.list_clusters()
                else:
                    response = await self.ecs.list_clusters(nextToken=next_token)
                clusters.extend(response.get("clusterArns", []))

                next_token = response.get("nextToken")
                if next_token is None:
                    break
        except (BotoCoreError, ClientError) as e:
            raise ECSImagesError(f"Failed to list ECS clusters: {e}") from e
        return clusters

    async def images_of_clusters(self, cluster_includes=()):
        """
        Map every cluster whose ARN contains one of cluster_includes (every
        cluster when empty) to the images its services run.
        """
        clusters = await self.list_clusters()
        self.logger.debug(f"Got clusters {clusters}")

        results = await gather_all(
            self.images_of_cluster(cluster)
            for cluster in filter_clusters(clusters, cluster_includes)
        )

        images_by_cluster = {}
        for cluster, images in results:
            images_by_cluster[cluster] = images
        return images_by_cluster
