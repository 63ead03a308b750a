"""
BeeBark Backend — Services Layer
==================================

Service Inventory:
    - PresenceRegistry / InMemoryPresenceRegistry: user id → live socket sid
    - FanoutChannel / SocketIOFanout: targeted statusUpdate and global broadcasts
    - MediaService: image validation and Cloudinary upload (with retries)
    - NotificationService: notification rows and the receiver's inbox
    - ConnectionService: send / accept / reject / status / remove
    - PostService: create / list / toggle like / add comment

Services take the caller's AsyncSession and never build HTTP responses;
failures are raised as BeeBarkError subclasses and translated in app.main.
"""
