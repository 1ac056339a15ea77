# Permission codes declared by the subsites layer for the permission catalog
SUBSITE_ASSETS_CREATE_SUBSITE = "SUBSITE_ASSETS_CREATE_SUBSITE"

# Default code used when listing subsites a member can edit
CMS_ACCESS_CMSMAIN = "CMS_ACCESS_CMSMain"

PERMISSIONS_CATEGORY = "Roles and access permissions"


def provide_permissions() -> dict[str, dict]:
    """
    Returns the permission codes this layer contributes to the catalog.
    """
    return {
        SUBSITE_ASSETS_CREATE_SUBSITE: {
            "name": "Manage assets for subsites",
            "category": PERMISSIONS_CATEGORY,
            "help": (
                "Ability to select the subsite to which an asset folder belongs. "
                'Requires "Access to Files & Images."'
            ),
            "sort": 300,
        }
    }
