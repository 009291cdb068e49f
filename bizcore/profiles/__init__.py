from bizcore.profiles.config_cache import InMemoryConfigCache, RedisConfigCache, build_cache_key, build_config_cache
from bizcore.profiles.profile_resolver import ProfileResolver
from bizcore.profiles.schemas import TenantProfileRecord
